import pytest

from shuttermint.messages import (
    AccusationMessage,
    ApologyMessage,
    PolyCommitmentMessage,
    PolyEvalMessage,
    ensure_unique_addresses,
    parse_accusation_msg,
    parse_apology_msg,
    parse_poly_commitment_msg,
    parse_poly_eval_msg,
    validate_address,
)
from shuttermint.types import ShutterAppError

EON = 5
SENDER = (123).to_bytes(20, "big")
ANOTHER = (456).to_bytes(20, "big")
BAD_ADDRESS = b"only nineteen bytes"
DATA = b"some data"


def _coord(value):
    return value.to_bytes(32, "big")


# Standard BN254 G2 generator, imaginary part first.
G2_GENERATOR = (
    _coord(11559732032986387107991004021392285783925812861821192530917403151452391805634)
    + _coord(10857046999023057135944570762232829481370756359578518086990519993285655852781)
    + _coord(4082367875863433681332203403145435568316851327593401208105741076214120093531)
    + _coord(8495653923123431417604973247489272438418190587263600148770280649306958101930)
)


def test_validate_address():
    assert validate_address(ANOTHER) == ANOTHER
    with pytest.raises(ShutterAppError):
        validate_address(BAD_ADDRESS)


def test_ensure_unique_addresses():
    ensure_unique_addresses([SENDER, ANOTHER])
    with pytest.raises(ShutterAppError):
        ensure_unique_addresses([SENDER, ANOTHER, SENDER])


def test_parse_poly_eval():
    msg = parse_poly_eval_msg(PolyEvalMessage(EON, [ANOTHER], [DATA]), SENDER)
    assert msg.sender == SENDER
    assert msg.eon == EON
    assert msg.receivers[0] == ANOTHER
    assert msg.encrypted_evals[0] == DATA


def test_parse_poly_eval_invalid_receiver():
    with pytest.raises(ShutterAppError):
        parse_poly_eval_msg(PolyEvalMessage(EON, [BAD_ADDRESS], [DATA]), SENDER)


def test_parse_poly_eval_length_mismatch():
    with pytest.raises(ShutterAppError):
        parse_poly_eval_msg(PolyEvalMessage(EON, [ANOTHER], [DATA, DATA]), SENDER)


def test_parse_poly_eval_duplicate_receivers():
    with pytest.raises(ShutterAppError):
        parse_poly_eval_msg(
            PolyEvalMessage(EON, [ANOTHER, ANOTHER], [DATA, DATA]), SENDER
        )


def test_parse_poly_commitment_empty():
    msg = parse_poly_commitment_msg(PolyCommitmentMessage(EON, []), SENDER)
    assert msg.sender == SENDER
    assert msg.eon == EON
    assert msg.gammas == []


def test_parse_poly_commitment_generator():
    msg = parse_poly_commitment_msg(PolyCommitmentMessage(EON, [G2_GENERATOR]), SENDER)
    assert msg.gammas == [G2_GENERATOR]


def test_parse_poly_commitment_infinity():
    msg = parse_poly_commitment_msg(PolyCommitmentMessage(EON, [bytes(128)]), SENDER)
    assert msg.gammas == [bytes(128)]


def test_parse_poly_commitment_too_short():
    with pytest.raises(ShutterAppError):
        parse_poly_commitment_msg(PolyCommitmentMessage(EON, [G2_GENERATOR[:100]]), SENDER)


def test_parse_poly_commitment_not_on_curve():
    tampered = G2_GENERATOR[:-1] + bytes([G2_GENERATOR[-1] ^ 1])
    with pytest.raises(ShutterAppError):
        parse_poly_commitment_msg(PolyCommitmentMessage(EON, [tampered]), SENDER)


def test_parse_poly_commitment_coordinate_too_large():
    with pytest.raises(ShutterAppError):
        parse_poly_commitment_msg(PolyCommitmentMessage(EON, [b"\xff" * 128]), SENDER)


def test_parse_accusation():
    msg = parse_accusation_msg(AccusationMessage(EON, [ANOTHER]), SENDER)
    assert msg.sender == SENDER
    assert msg.eon == EON
    assert msg.accused[0] == ANOTHER


def test_parse_accusation_invalid_accused():
    with pytest.raises(ShutterAppError):
        parse_accusation_msg(AccusationMessage(EON, [BAD_ADDRESS]), SENDER)


def test_parse_apology():
    msg = parse_apology_msg(ApologyMessage(EON, [ANOTHER], [b""]), SENDER)
    assert msg.sender == SENDER
    assert msg.eon == EON
    assert msg.accusers[0] == ANOTHER
    assert msg.poly_eval == [0]


def test_parse_apology_decodes_big_endian():
    msg = parse_apology_msg(ApologyMessage(EON, [ANOTHER], [b"\x01\x00"]), SENDER)
    assert msg.poly_eval == [256]


def test_parse_apology_invalid_accuser():
    with pytest.raises(ShutterAppError):
        parse_apology_msg(ApologyMessage(EON, [BAD_ADDRESS], [b""]), SENDER)


def test_parse_apology_length_mismatch():
    with pytest.raises(ShutterAppError):
        parse_apology_msg(ApologyMessage(EON, [ANOTHER], []), SENDER)