"""Bookkeeping for one distributed key generation instance (an eon)."""

from __future__ import annotations

from dataclasses import dataclass, field

from shuttermint.types import (
    Accusation,
    Address,
    Apology,
    BatchConfig,
    PolyCommitment,
    PolyEval,
    ShutterAppError,
)
from shuttermint.voting import Voting


def _hex(address: Address) -> str:
    return "0x" + address.hex()


@dataclass(frozen=True)
class SenderReceiverPair:
    """A sender together with one receiver of its polynomial evaluation."""

    sender: Address
    receiver: Address


@dataclass
class DKGInstance:
    """State of the key generation for a single eon."""

    config: BatchConfig
    eon: int
    success_voting: Voting[bool] = field(default_factory=Voting)
    poly_evals_seen: set[SenderReceiverPair] = field(default_factory=set)
    poly_commitments_seen: set[Address] = field(default_factory=set)
    accusations_seen: set[Address] = field(default_factory=set)
    apologies_seen: set[Address] = field(default_factory=set)

    def _check_eon_and_sender(self, eon: int, sender: Address) -> None:
        if eon != self.eon:
            raise ShutterAppError(f"msg is from eon {eon}, not {self.eon}")
        if not self.config.is_keyper(sender):
            raise ShutterAppError(f"sender {_hex(sender)} is not a keyper")

    def register_poly_eval_msg(self, msg: PolyEval) -> None:
        """Record a polynomial evaluation message.

        Sender and receivers must be keypers, the sender may not send to itself,
        and each sender may send only one evaluation to each receiver.
        """
        self._check_eon_and_sender(msg.eon, msg.sender)
        sender = msg.sender
        for receiver in msg.receivers:
            if not self.config.is_keyper(receiver):
                raise ShutterAppError(f"receiver {_hex(receiver)} is not a keyper")
            if receiver == sender:
                raise ShutterAppError(f"receiver {_hex(receiver)} is also the sender")
            if SenderReceiverPair(sender, receiver) in self.poly_evals_seen:
                raise ShutterAppError(
                    f"polynomial evaluation from keyper {_hex(sender)} "
                    f"for receiver {_hex(receiver)} already present"
                )
        self.poly_evals_seen.update(
            SenderReceiverPair(sender, receiver) for receiver in msg.receivers
        )

    def register_poly_commitment_msg(self, msg: PolyCommitment) -> None:
        """Record a polynomial commitment message, at most one per keyper."""
        self._check_eon_and_sender(msg.eon, msg.sender)
        if msg.sender in self.poly_commitments_seen:
            raise ShutterAppError(
                f"polynomial commitment from keyper {_hex(msg.sender)} already present"
            )
        self.poly_commitments_seen.add(msg.sender)

    def register_accusation_msg(self, msg: Accusation) -> None:
        """Record an accusation message, at most one per keyper."""
        self._check_eon_and_sender(msg.eon, msg.sender)
        for accused in msg.accused:
            if not self.config.is_keyper(accused):
                raise ShutterAppError(f"accused {_hex(accused)} is not a keyper")
            if accused == msg.sender:
                raise ShutterAppError(
                    f"sender {_hex(msg.sender)} is accusing themselves"
                )
        if msg.sender in self.accusations_seen:
            raise ShutterAppError(
                f"accusation from keyper {_hex(msg.sender)} already present"
            )
        self.accusations_seen.add(msg.sender)

    def register_apology_msg(self, msg: Apology) -> None:
        """Record an apology message, at most one per keyper."""
        self._check_eon_and_sender(msg.eon, msg.sender)
        for accuser in msg.accusers:
            if not self.config.is_keyper(accuser):
                raise ShutterAppError(f"accuser {_hex(accuser)} is not a keyper")
            if accuser == msg.sender:
                raise ShutterAppError(
                    f"sender {_hex(msg.sender)} sends apology for accusation "
                    "against themselves"
                )
        if msg.sender in self.apologies_seen:
            raise ShutterAppError(
                f"apology from keyper {_hex(msg.sender)} already present"
            )
        self.apologies_seen.add(msg.sender)