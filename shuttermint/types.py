"""Core data types shared by the Shuttermint application state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ED25519_PUBLIC_KEY_SIZE = 32
ADDRESS_LENGTH = 20

Address = bytes


class ShutterAppError(Exception):
    """Raised when the application rejects an input or state change."""


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def _join_hex(items: list[bytes]) -> str:
    return ",".join(_hex(item) for item in items)


@dataclass(frozen=True)
class ValidatorPubkey:
    """A raw 32 byte ed25519 public key used as a validator key."""

    ed25519_pubkey: bytes

    def __str__(self) -> str:
        return f"ed25519:{self.ed25519_pubkey.hex()}"


def new_validator_pubkey(pubkey: bytes) -> ValidatorPubkey:
    """Create a ValidatorPubkey from a raw ed25519 public key."""
    if len(pubkey) != ED25519_PUBLIC_KEY_SIZE:
        raise ShutterAppError("pubkey must be 32 bytes")
    return ValidatorPubkey(bytes(pubkey))


@dataclass(frozen=True)
class Event:
    """An event emitted by the application."""

    type: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """The result of handling a request."""

    code: int = 0
    log: str = ""
    events: list[Event] = field(default_factory=list)
    gas_wanted: int = 0
    validator_updates: list[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.code == 0


@dataclass
class BatchConfig:
    """A keyper set configuration together with its activation state."""

    keyper_config_index: int = 0
    activation_block_number: int = 0
    keypers: list[Address] = field(default_factory=list)
    threshold: int = 0
    started: bool = False
    validators_updated: bool = False

    def ensure_valid(self) -> None:
        """Raise ShutterAppError unless the config is well formed."""
        for keyper in self.keypers:
            if len(keyper) != ADDRESS_LENGTH:
                raise ShutterAppError(
                    f"keyper address {_hex(keyper)} has invalid length "
                    f"({len(keyper)} instead of {ADDRESS_LENGTH} bytes)"
                )
        if len(set(self.keypers)) != len(self.keypers):
            raise ShutterAppError("duplicate keyper in config")
        if self.threshold == 0:
            raise ShutterAppError("threshold must be positive")
        if self.threshold > len(self.keypers):
            raise ShutterAppError(
                f"threshold ({self.threshold}) exceeds number of keypers "
                f"({len(self.keypers)})"
            )

    def keyper_index(self, address: Address) -> int | None:
        """Return the index of the given keyper, or None if it is not a member."""
        try:
            return self.keypers.index(address)
        except ValueError:
            return None

    def is_keyper(self, address: Address) -> bool:
        return address in self.keypers

    def make_event(self) -> Event:
        return Event(
            "shutter.batch-config",
            {
                "KeyperConfigIndex": str(self.keyper_config_index),
                "ActivationBlockNumber": str(self.activation_block_number),
                "Threshold": str(self.threshold),
                "Keypers": _join_hex(self.keypers),
            },
        )


@dataclass
class GenesisAppState:
    """The initial keyper set that bootstraps the chain."""

    keypers: list[Address] = field(default_factory=list)
    threshold: int = 0

    def get_keypers(self) -> list[Address]:
        return list(self.keypers)


def new_genesis_app_state(keypers: list[Address], threshold: int) -> GenesisAppState:
    return GenesisAppState(keypers=list(keypers), threshold=threshold)


@dataclass
class MessageWithNonce:
    """A decoded transaction payload with its chain id and random nonce."""

    chain_id: str = ""
    random_nonce: int = 0
    msg: Any = None


@dataclass
class PolyEval:
    """Encrypted polynomial evaluations sent by one keyper to others."""

    sender: Address
    eon: int
    receivers: list[Address] = field(default_factory=list)
    encrypted_evals: list[bytes] = field(default_factory=list)

    def make_event(self) -> Event:
        return Event(
            "shutter.poly-eval",
            {
                "Sender": _hex(self.sender),
                "Eon": str(self.eon),
                "Receivers": _join_hex(self.receivers),
                "EncryptedEvals": _join_hex(self.encrypted_evals),
            },
        )


@dataclass
class PolyCommitment:
    """A keyper's commitment to its polynomial."""

    sender: Address
    eon: int
    gammas: list[bytes] = field(default_factory=list)

    def make_event(self) -> Event:
        return Event(
            "shutter.poly-commitment",
            {
                "Sender": _hex(self.sender),
                "Eon": str(self.eon),
                "Gammas": _join_hex(self.gammas),
            },
        )


@dataclass
class Accusation:
    """A keyper accusing others of misbehaviour during key generation."""

    sender: Address
    eon: int
    accused: list[Address] = field(default_factory=list)

    def make_event(self) -> Event:
        return Event(
            "shutter.accusation",
            {
                "Sender": _hex(self.sender),
                "Eon": str(self.eon),
                "Accused": _join_hex(self.accused),
            },
        )


@dataclass
class Apology:
    """A keyper answering accusations with its polynomial evaluations."""

    sender: Address
    eon: int
    accusers: list[Address] = field(default_factory=list)
    poly_eval: list[int] = field(default_factory=list)

    def make_event(self) -> Event:
        return Event(
            "shutter.apology",
            {
                "Sender": _hex(self.sender),
                "Eon": str(self.eon),
                "Accusers": _join_hex(self.accusers),
                "PolyEval": ",".join(str(value) for value in self.poly_eval),
            },
        )