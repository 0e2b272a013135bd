"""Tracking of random nonces used by transaction senders."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class NonceTracker:
    """Remembers which nonces each sender has used."""

    random_nonces: dict[bytes, set[int]] = field(default_factory=dict)

    def check(self, sender: bytes, random_nonce: int) -> bool:
        """Return True if the nonce is still free for the sender."""
        return random_nonce not in self.random_nonces.get(sender, ())

    def add(self, sender: bytes, random_nonce: int) -> None:
        self.random_nonces.setdefault(sender, set()).add(random_nonce)