"""Deterministic keyper chain state: batch configs, DKG bookkeeping, voting and validator power."""

__version__ = "0.1.0"