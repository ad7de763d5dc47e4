"""
Batch assembly for one flush cycle.

The joined payload is the body POSTed to the collection endpoint, so its
byte layout is part of the wire contract:

    payload  = record_1 "\\n" record_2 "\\n" ... record_n "\\n"

where each record_i is one file's content with trailing CR/LF removed.
Files that are empty after stripping contribute nothing. With no non-empty
files the payload is b"".
"""

from collections.abc import Iterable
from dataclasses import dataclass

from .source import Record

SEPARATOR = b"\n"


@dataclass(frozen=True)
class Batch:
    """Identifiers of the files in one flush cycle and their joined payload."""

    identifiers: tuple[str, ...]
    payload: bytes

    @property
    def is_empty(self) -> bool:
        return not self.payload

    def __len__(self) -> int:
        return len(self.identifiers)


def join_payloads(payloads: Iterable[bytes]) -> bytes:
    """Join record payloads into newline-delimited form."""
    parts = [p.rstrip(b"\r\n") for p in payloads]
    parts = [p for p in parts if p]
    if not parts:
        return b""
    return SEPARATOR.join(parts) + SEPARATOR


def build_batch(records: Iterable[Record]) -> Batch:
    """Build the batch for a flush cycle, preserving record order."""
    records = list(records)
    return Batch(
        identifiers=tuple(r.identifier for r in records),
        payload=join_payloads(r.payload for r in records),
    )
