"""Validator voting power maps and the updates derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from shuttermint.types import ShutterAppError, ValidatorPubkey, new_validator_pubkey

Powermap = dict[ValidatorPubkey, int]

ED25519 = "ed25519"


@dataclass(frozen=True)
class ValidatorUpdate:
    """A change of voting power for one validator key."""

    pubkey: bytes
    power: int
    key_type: str = ED25519


def make_powermap(validators: Iterable[ValidatorUpdate]) -> Powermap:
    """Build a powermap summing the powers given for each validator key."""
    result: Powermap = {}
    for validator in validators:
        if validator.key_type != ED25519:
            raise ShutterAppError(
                f"cannot handle key {validator.key_type}:{validator.pubkey.hex()}"
            )
        pubkey = new_validator_pubkey(validator.pubkey)
        result[pubkey] = result.get(pubkey, 0) + validator.power
    return result


def sort_validators(validators: list[ValidatorUpdate]) -> None:
    """Sort validator updates in place by public key bytes."""
    validators.sort(key=lambda v: v.pubkey)


def diff_powermaps(oldpm: Powermap, newpm: Powermap) -> Powermap:
    """Compute the changes that turn the old validator set into the new one."""
    result: Powermap = {key: 0 for key in oldpm if key not in newpm}
    result.update(
        (key, power) for key, power in newpm.items() if oldpm.get(key, 0) != power
    )
    return result


def validator_updates(pm: Powermap) -> list[ValidatorUpdate]:
    """Return the powermap as a deterministically ordered list of updates."""
    updates = [ValidatorUpdate(key.ed25519_pubkey, power) for key, power in pm.items()]
    sort_validators(updates)
    return updates