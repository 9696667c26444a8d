"""
Pool state aggregate and the storage boundary.

PoolState owns the Merkle tree and both registries. It is loaded at the
start of every pool call and saved at the end of a successful one; stores
keep the encoded form so each load is an independent snapshot.

Persisted layout (CBOR):
    {"v": 1,
     "tree": {"depth", "next_index", "filled_subtrees", "roots"},
     "commitments": [...], "nullifiers": [...]}
with every field element as a 32-byte big-endian byte string.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import cbor2

from .config import STATE_FORMAT_VERSION, TREE_LEVELS
from .exceptions import InvalidArgument, StorageError
from .merkle import IncrementalMerkleTree
from .registry import CommitmentRegistry, NullifierRegistry
from .types import field_from_bytes, field_to_bytes

logger = logging.getLogger(__name__)


@dataclass
class PoolState:
    """The single mutable aggregate of one deployed pool."""

    tree: IncrementalMerkleTree = field(default_factory=IncrementalMerkleTree)
    commitments: CommitmentRegistry = field(default_factory=CommitmentRegistry)
    nullifiers: NullifierRegistry = field(default_factory=NullifierRegistry)

    def to_bytes(self) -> bytes:
        tree = self.tree.to_dict()
        payload = {
            "v": STATE_FORMAT_VERSION,
            "tree": {
                "depth": tree["depth"],
                "next_index": tree["next_index"],
                "filled_subtrees": [field_to_bytes(v) for v in tree["filled_subtrees"]],
                "roots": [field_to_bytes(v) for v in tree["roots"]],
            },
            "commitments": [field_to_bytes(c) for c in self.commitments],
            "nullifiers": [field_to_bytes(n) for n in self.nullifiers],
        }
        return cbor2.dumps(payload)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "PoolState":
        """
        Decode persisted state.

        Raises:
            StorageError: If the blob is not a valid pool state.
        """
        try:
            payload = cbor2.loads(blob)
        except (cbor2.CBORDecodeError, ValueError) as exc:
            raise StorageError(f"undecodable pool state: {exc}") from exc

        if not isinstance(payload, dict):
            raise StorageError("pool state payload must be a map")
        if payload.get("v") != STATE_FORMAT_VERSION:
            raise StorageError(f"unsupported state version {payload.get('v')!r}")

        try:
            raw_tree: Dict[str, Any] = payload["tree"]
            tree = IncrementalMerkleTree.from_dict(raw_tree)
            commitments = CommitmentRegistry(
                field_from_bytes(c) for c in payload["commitments"]
            )
            nullifiers = NullifierRegistry(
                field_from_bytes(n) for n in payload["nullifiers"]
            )
        except (KeyError, TypeError, ValueError, InvalidArgument) as exc:
            raise StorageError(f"malformed pool state: {exc}") from exc

        if len(commitments) != tree.next_index:
            raise StorageError(
                f"{len(commitments)} commitments recorded for "
                f"{tree.next_index} tree leaves"
            )
        return cls(tree=tree, commitments=commitments, nullifiers=nullifiers)


class StateStore(Protocol):
    """Persistent storage collaborator for one pool."""

    def load(self) -> PoolState:
        ...

    def save(self, state: PoolState) -> None:
        ...


class MemoryStateStore:
    """In-process store. Holds encoded bytes so loads never alias."""

    def __init__(self, state: Optional[PoolState] = None) -> None:
        self._blob = (state or PoolState()).to_bytes()

    def load(self) -> PoolState:
        return PoolState.from_bytes(self._blob)

    def save(self, state: PoolState) -> None:
        self._blob = state.to_bytes()

    @property
    def raw(self) -> bytes:
        return self._blob


class FileStateStore:
    """CBOR file store with atomic replace on save."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def initialize(self, depth: int = TREE_LEVELS) -> PoolState:
        if self.exists():
            raise StorageError(f"pool state already exists at {self._path}")
        state = PoolState(tree=IncrementalMerkleTree(depth=depth))
        self.save(state)
        return state

    def load(self) -> PoolState:
        try:
            blob = self._path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Unable to read pool state {self._path}: {exc}") from exc
        return PoolState.from_bytes(blob)

    def save(self, state: PoolState) -> None:
        blob = state.to_bytes()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=self._path.name, suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(blob)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Unable to write pool state {self._path}: {exc}") from exc
        logger.debug("Saved pool state to %s (%d bytes)", self._path, len(blob))
