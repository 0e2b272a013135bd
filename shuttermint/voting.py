"""Simple voting where each address backs one candidate."""

from __future__ import annotations

import operator
from collections import Counter
from typing import Any, Callable, Generic, TypeVar

from shuttermint.types import ShutterAppError

T = TypeVar("T")


class AlreadyVotedError(ShutterAppError):
    """Raised when an address votes a second time."""

    def __init__(self) -> None:
        super().__init__("sender already voted")


class Voting(Generic[T]):
    """Stores votes; each address votes on one candidate."""

    def __init__(self, equals: Callable[[Any, Any], bool] = operator.eq) -> None:
        self.equals = equals
        self.votes: dict[bytes, int] = {}
        self.candidates: list[T] = []

    def set_vote(self, sender: bytes, candidate: T) -> None:
        """Record the vote, replacing any earlier vote of the sender."""
        for index, existing in enumerate(self.candidates):
            if self.equals(candidate, existing):
                self.votes[sender] = index
                return
        self.candidates.append(candidate)
        self.votes[sender] = len(self.candidates) - 1

    def add_vote(self, sender: bytes, candidate: T) -> None:
        """Record the vote; raise AlreadyVotedError if the sender voted before."""
        if sender in self.votes:
            raise AlreadyVotedError()
        self.set_vote(sender, candidate)

    def outcome(self, num_required_votes: int) -> T | None:
        """Return a candidate with at least the given number of votes, else None."""
        counts = Counter(self.votes.values())
        for index in sorted(counts):
            if counts[index] >= num_required_votes:
                return self.candidates[index]
        return None