"""
Write-once registries for deposited commitments and spent nullifiers.

Both are append-only sets: entries are added at most once over the pool's
lifetime and never removed. Insertion order is preserved so the persisted
layout is deterministic.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List


class _WriteOnceSet:
    _KIND = "entry"

    def __init__(self, entries: Iterable[int] = ()) -> None:
        self._entries: Dict[int, None] = {}
        for entry in entries:
            self.add(entry)

    def contains(self, value: int) -> bool:
        return value in self._entries

    def add(self, value: int) -> None:
        if value in self._entries:
            raise ValueError(f"{self._KIND} already recorded")
        self._entries[value] = None

    def to_list(self) -> List[int]:
        return list(self._entries)

    def __contains__(self, value: object) -> bool:
        return value in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _WriteOnceSet):
            return NotImplemented
        return type(self) is type(other) and self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={len(self)})"


class CommitmentRegistry(_WriteOnceSet):
    """Commitments accepted into the Merkle tree."""

    _KIND = "commitment"


class NullifierRegistry(_WriteOnceSet):
    """Nullifier hashes consumed by withdrawals."""

    _KIND = "nullifier hash"
