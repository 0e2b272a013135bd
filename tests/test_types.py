import pytest

from shuttermint.types import (
    Accusation,
    Apology,
    BatchConfig,
    MessageWithNonce,
    PolyCommitment,
    PolyEval,
    Response,
    ShutterAppError,
    ValidatorPubkey,
    new_genesis_app_state,
    new_validator_pubkey,
)


def address(n: int) -> bytes:
    return n.to_bytes(20, "big")


KEYPERS = [address(i) for i in range(10)]


def test_new_validator_pubkey_rejects_wrong_length():
    with pytest.raises(ShutterAppError):
        new_validator_pubkey(b"xxx")
    with pytest.raises(ShutterAppError):
        new_validator_pubkey(bytes(33))


def test_validator_pubkey_str_round_trip():
    raw = bytes(range(32))
    pk = new_validator_pubkey(raw)
    text = str(pk)
    assert text.startswith("ed25519:")
    assert bytes.fromhex(text[len("ed25519:"):]) == raw


def test_validator_pubkey_usable_as_key():
    a = new_validator_pubkey(b"a" * 32)
    b = new_validator_pubkey(b"a" * 32)
    assert a == b
    assert {a: 1}[b] == 1
    assert a != ValidatorPubkey(b"b" * 32)


def test_default_batch_config_equal():
    assert BatchConfig() == BatchConfig()
    assert BatchConfig(threshold=1) != BatchConfig()


def test_keyper_index_and_membership():
    cfg = BatchConfig(keypers=KEYPERS, threshold=1)
    assert cfg.keyper_index(KEYPERS[3]) == 3
    assert cfg.keyper_index(address(666)) is None
    assert cfg.is_keyper(KEYPERS[0])
    assert not cfg.is_keyper(address(666))


def test_ensure_valid_accepts_good_config():
    cfg = BatchConfig(keyper_config_index=1, activation_block_number=100,
                      keypers=KEYPERS, threshold=2)
    cfg.ensure_valid()
    assert cfg.threshold == 2


@pytest.mark.parametrize(
    "keypers,threshold",
    [
        ([address(1), address(1)], 1),
        ([address(1), address(2)], 0),
        ([address(1), address(2)], 3),
        ([b"short"], 1),
    ],
)
def test_ensure_valid_rejects_bad_config(keypers, threshold):
    with pytest.raises(ShutterAppError):
        BatchConfig(keypers=keypers, threshold=threshold).ensure_valid()


def test_batch_config_event_carries_fields():
    cfg = BatchConfig(keyper_config_index=4, activation_block_number=77,
                      keypers=KEYPERS[:2], threshold=2)
    event = cfg.make_event()
    assert event.attributes["KeyperConfigIndex"] == str(cfg.keyper_config_index)
    assert event.attributes["ActivationBlockNumber"] == str(cfg.activation_block_number)
    assert event.attributes["Threshold"] == str(cfg.threshold)
    keypers = [bytes.fromhex(k[2:]) for k in event.attributes["Keypers"].split(",")]
    assert keypers == KEYPERS[:2]


def test_genesis_app_state():
    state = new_genesis_app_state(KEYPERS[:3], 2)
    assert state.get_keypers() == KEYPERS[:3]
    assert state.threshold == 2
    state.get_keypers().append(address(99))
    assert len(state.keypers) == 3


def test_message_events_carry_sender_and_eon():
    sender = address(123)
    events = [
        PolyEval(sender, 5, [address(1)], [b"data"]).make_event(),
        PolyCommitment(sender, 5, [b"g"]).make_event(),
        Accusation(sender, 5, [address(1)]).make_event(),
        Apology(sender, 5, [address(1)], [7]).make_event(),
    ]
    assert len({e.type for e in events}) == 4
    for event in events:
        assert bytes.fromhex(event.attributes["Sender"][2:]) == sender
        assert event.attributes["Eon"] == "5"


def test_response_defaults():
    response = Response()
    assert response.code == 0
    assert response.ok
    assert response.events == []
    assert not Response(code=1, log="fail").ok


def test_message_with_nonce_defaults():
    msg = MessageWithNonce(random_nonce=10)
    assert msg.random_nonce == 10
    assert msg.chain_id == ""
    assert msg.msg is None