"""Helpers used when creating the configuration of a new chain node."""

from __future__ import annotations

import re
from typing import Iterable

from shuttermint.types import Address, ShutterAppError

_HEX_ADDRESS = re.compile(r"(?:0[xX])?([0-9a-fA-F]{40})")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def adjust_port(address: str, keyper_index: int) -> str:
    """Shift the port of a host:port address by twice the keyper index."""
    *head, port = address.split(":")
    if not head:
        raise ShutterAppError(f"address {address} does not contain port")
    if not _INTEGER.fullmatch(port):
        raise ShutterAppError(f"port {port} is not an integer")
    return ":".join(head) + ":" + str(int(port) + keyper_index * 2)


def genesis_threshold(num_keypers: int) -> int:
    """Return the threshold used for the genesis keyper set: two thirds, rounded up."""
    return (2 * num_keypers + 2) // 3


def parse_genesis_keypers(addresses: Iterable[str]) -> list[Address]:
    """Parse hex encoded keyper addresses given on the command line."""
    keypers = []
    for text in addresses:
        match = _HEX_ADDRESS.fullmatch(text)
        if match is None:
            raise ShutterAppError(
                f"--genesis-keyper argument '{text}' is not an address"
            )
        keypers.append(bytes.fromhex(match.group(1)))
    return keypers