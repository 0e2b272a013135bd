"""Wire-level messages and their conversion into validated application messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from shuttermint.types import (
    ADDRESS_LENGTH,
    Accusation,
    Address,
    Apology,
    PolyCommitment,
    PolyEval,
    ShutterAppError,
)

# Field modulus of the BN254 curve used for polynomial commitments.
_P = 21888242871839275222246405745257275088696311157297823662689037894645226208583
_COORDINATE_SIZE = 32
_G2_SIZE = 4 * _COORDINATE_SIZE


@dataclass
class PolyEvalMessage:
    eon: int = 0
    receivers: list[bytes] = field(default_factory=list)
    encrypted_evals: list[bytes] = field(default_factory=list)


@dataclass
class PolyCommitmentMessage:
    eon: int = 0
    gammas: list[bytes] = field(default_factory=list)


@dataclass
class AccusationMessage:
    eon: int = 0
    accused: list[bytes] = field(default_factory=list)


@dataclass
class ApologyMessage:
    eon: int = 0
    accusers: list[bytes] = field(default_factory=list)
    poly_evals: list[bytes] = field(default_factory=list)


@dataclass
class BatchConfigMessage:
    activation_block_number: int = 0
    keypers: list[bytes] = field(default_factory=list)
    threshold: int = 0
    keyper_config_index: int = 0


@dataclass
class BlockSeenMessage:
    block_number: int = 0


@dataclass
class CheckInMessage:
    validator_public_key: bytes = b""
    encryption_public_key: bytes = b""


@dataclass
class DKGResultMessage:
    eon: int = 0
    success: bool = False


def validate_address(address: bytes) -> Address:
    """Return the address if it has the right length, else raise ShutterAppError."""
    if len(address) != ADDRESS_LENGTH:
        raise ShutterAppError(
            f"address has invalid length ({len(address)} instead of "
            f"{ADDRESS_LENGTH} bytes)"
        )
    return bytes(address)


def ensure_unique_addresses(addresses: Iterable[Address]) -> None:
    """Raise ShutterAppError if an address occurs more than once."""
    seen: set[Address] = set()
    for address in addresses:
        if address in seen:
            raise ShutterAppError(f"duplicate address: 0x{address.hex()}")
        seen.add(address)


def _validate_addresses(raw: Iterable[bytes]) -> list[Address]:
    addresses = [validate_address(item) for item in raw]
    ensure_unique_addresses(addresses)
    return addresses


def _fp2_mul(a: tuple[int, int], b: tuple[int, int]) -> tuple[int, int]:
    # Elements are (imaginary, real) with i^2 = -1.
    a1, a0 = a
    b1, b0 = b
    return ((a0 * b1 + a1 * b0) % _P, (a0 * b0 - a1 * b1) % _P)


def _twist_b() -> tuple[int, int]:
    # b' = 3 / (9 + i) = 3 * (9 - i) / 82
    inv82 = pow(82, _P - 2, _P)
    return ((-3 * inv82) % _P, (27 * inv82) % _P)


_TWIST_B = _twist_b()


def _check_g2_point(data: bytes) -> None:
    if len(data) < _G2_SIZE:
        raise ShutterAppError("bn256: not enough data")
    coords = [
        int.from_bytes(data[offset : offset + _COORDINATE_SIZE], "big")
        for offset in range(0, _G2_SIZE, _COORDINATE_SIZE)
    ]
    if any(c >= _P for c in coords):
        raise ShutterAppError("bn256: coordinate exceeds modulus")
    if not any(coords):
        return  # point at infinity
    x = (coords[0], coords[1])
    y = (coords[2], coords[3])
    lhs = _fp2_mul(y, y)
    x3 = _fp2_mul(_fp2_mul(x, x), x)
    rhs = ((x3[0] + _TWIST_B[0]) % _P, (x3[1] + _TWIST_B[1]) % _P)
    if lhs != rhs:
        raise ShutterAppError("bn256: malformed point")


def parse_poly_eval_msg(msg: PolyEvalMessage, sender: Address) -> PolyEval:
    """Validate a polynomial evaluation message."""
    if len(msg.receivers) != len(msg.encrypted_evals):
        raise ShutterAppError(
            f"number of receivers {len(msg.receivers)} does not match number of "
            f"evals {len(msg.encrypted_evals)}"
        )
    receivers = _validate_addresses(msg.receivers)
    return PolyEval(
        sender=sender,
        eon=msg.eon,
        receivers=receivers,
        encrypted_evals=list(msg.encrypted_evals),
    )


def parse_poly_commitment_msg(
    msg: PolyCommitmentMessage, sender: Address
) -> PolyCommitment:
    """Validate a polynomial commitment message; every gamma must be a G2 point."""
    for gamma in msg.gammas:
        _check_g2_point(gamma)
    return PolyCommitment(sender=sender, eon=msg.eon, gammas=list(msg.gammas))


def parse_accusation_msg(msg: AccusationMessage, sender: Address) -> Accusation:
    """Validate an accusation message."""
    return Accusation(
        sender=sender, eon=msg.eon, accused=_validate_addresses(msg.accused)
    )


def parse_apology_msg(msg: ApologyMessage, sender: Address) -> Apology:
    """Validate an apology message, decoding the evaluations as big-endian integers."""
    if len(msg.accusers) != len(msg.poly_evals):
        raise ShutterAppError(
            f"number of accusers {len(msg.accusers)} and apology evals "
            f"{len(msg.poly_evals)} not equal"
        )
    accusers = _validate_addresses(msg.accusers)
    return Apology(
        sender=sender,
        eon=msg.eon,
        accusers=accusers,
        poly_eval=[int.from_bytes(value, "big") for value in msg.poly_evals],
    )