"""Per-block mempool admission state."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from shuttermint.noncetracker import NonceTracker
from shuttermint.types import MessageWithNonce

MAX_TXS_PER_BLOCK = 10
"""The maximum number of transactions by a single sender per block."""


@dataclass
class CheckTxState:
    """State used when checking transactions, reset at every commit."""

    members: set[bytes] = field(default_factory=set)
    tx_counts: Counter = field(default_factory=Counter)
    nonce_tracker: NonceTracker = field(default_factory=NonceTracker)

    def reset(self) -> None:
        """Forget transaction counts and nonces seen since the last commit."""
        self.tx_counts = Counter()
        self.nonce_tracker = NonceTracker()

    def set_members(self, members: Iterable[bytes]) -> None:
        """Set the addresses allowed to send transactions."""
        self.members = set(members)

    def add_tx(self, sender: bytes, msg: MessageWithNonce) -> bool:
        """Admit the transaction if allowed and record it.

        A transaction is admitted if the sender is a member (or no members are
        set), has not reached the per-block limit, and has not used the nonce
        since the last reset.
        """
        if self.members and sender not in self.members:
            return False
        if self.tx_counts[sender] >= MAX_TXS_PER_BLOCK:
            return False
        if not self.nonce_tracker.check(sender, msg.random_nonce):
            return False
        self.tx_counts[sender] += 1
        self.nonce_tracker.add(sender, msg.random_nonce)
        return True