"""
Off-chain helpers for depositors and withdrawers.

A note is the secret pair (nullifier, secret) behind one deposit:

    commitment     = MiMC7.multi_hash([nullifier, secret])
    nullifier_hash = MiMC7.multi_hash([nullifier])

ClientMerkleTree mirrors the pool tree from public Deposit events so a
withdrawer can build the authentication path the proving circuit needs.
A path is captured when its leaf is inserted and proves membership under
the root of that moment, which the pool accepts while it stays in the
root window.
"""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import TREE_LEVELS, ZERO_VALUE
from .mimc import hash_pair, multi_hash
from .types import DepositEvent, recipient_to_field, to_field

# 31 bytes always fits below the field modulus
NOTE_SECRET_BYTES = 31


@dataclass(frozen=True)
class Note:
    nullifier: int
    secret: int

    @property
    def commitment(self) -> int:
        return multi_hash([self.nullifier, self.secret])

    @property
    def nullifier_hash(self) -> int:
        return multi_hash([self.nullifier])


def generate_note() -> Note:
    return Note(
        nullifier=int.from_bytes(secrets.token_bytes(NOTE_SECRET_BYTES), "big"),
        secret=int.from_bytes(secrets.token_bytes(NOTE_SECRET_BYTES), "big"),
    )


def save_note(
    path: Union[str, Path], note: Note, leaf_index: Optional[int] = None
) -> Path:
    """Write a note file. Anyone holding it can withdraw the deposit."""
    path = Path(path)
    data = {
        "nullifier": str(note.nullifier),
        "secret": str(note.secret),
        "commitment": str(note.commitment),
        "leaf_index": leaf_index,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def load_note(path: Union[str, Path]) -> tuple[Note, Optional[int]]:
    """
    Read a note file.

    Returns:
        (note, leaf_index) where leaf_index may be None.

    Raises:
        ValueError: If the stored commitment does not match the secrets.
    """
    data: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    note = Note(
        nullifier=to_field(data["nullifier"], "nullifier"),
        secret=to_field(data["secret"], "secret"),
    )
    stored = data.get("commitment")
    if stored is not None and to_field(stored, "commitment") != note.commitment:
        raise ValueError("note commitment does not match its secrets")
    leaf_index = data.get("leaf_index")
    return note, (int(leaf_index) if leaf_index is not None else None)


# ============================================================================
# CLIENT-SIDE TREE
# ============================================================================


@dataclass(frozen=True)
class MerklePath:
    """
    Authentication path, leaf level first. Index 0: leaf side is left.

    ``root`` is the pool root right after the leaf was inserted; the path
    folds to that root only.
    """

    elements: List[int]
    indices: List[int]
    root: int


class ClientMerkleTree:
    """
    Replica of the pool tree, rebuilt from deposit commitments.

    Replays the pool's insertion rule, so it produces the same roots as
    IncrementalMerkleTree for the same inserts, and records each leaf's
    path at the moment it is inserted.
    """

    def __init__(self, depth: int = TREE_LEVELS) -> None:
        self._depth = depth
        self._filled_subtrees: List[int] = [ZERO_VALUE] * depth
        self._leaves: List[int] = []
        self._paths: List[MerklePath] = []

    @property
    def leaves(self) -> List[int]:
        return list(self._leaves)

    def insert(self, leaf: int) -> int:
        if len(self._leaves) >= 2**self._depth:
            raise ValueError("tree is full")

        elements: List[int] = []
        indices: List[int] = []
        index = len(self._leaves)
        current = leaf
        for level in range(self._depth):
            sibling = self._filled_subtrees[level]
            elements.append(sibling)
            if index % 2 == 0:
                indices.append(0)
                self._filled_subtrees[level] = current
                current = hash_pair(current, sibling)
            else:
                indices.append(1)
                current = hash_pair(sibling, current)
            index //= 2

        self._leaves.append(leaf)
        self._paths.append(MerklePath(elements=elements, indices=indices, root=current))
        return len(self._leaves) - 1

    def index_of(self, leaf: int) -> int:
        try:
            return self._leaves.index(leaf)
        except ValueError:
            raise KeyError("commitment not found in tree") from None

    def root(self) -> int:
        if not self._paths:
            return ZERO_VALUE
        return self._paths[-1].root

    def path(self, leaf_index: int) -> MerklePath:
        if not 0 <= leaf_index < len(self._leaves):
            raise IndexError(f"leaf index {leaf_index} out of range")
        return self._paths[leaf_index]

    @classmethod
    def rebuild_from_events(
        cls, events: Iterable[Any], depth: int = TREE_LEVELS
    ) -> "ClientMerkleTree":
        """
        Reconstruct the tree from Deposit events (other events are ignored).

        Raises:
            ValueError: If leaf indices are not exactly 0..n-1.
        """
        deposits = sorted(
            (e for e in events if isinstance(e, DepositEvent)),
            key=lambda e: e.leaf_index,
        )
        tree = cls(depth=depth)
        for expected, event in enumerate(deposits):
            if event.leaf_index != expected:
                raise ValueError(
                    f"missing or duplicate deposit at leaf index {expected}"
                )
            tree.insert(event.commitment)
        return tree


def build_circuit_input(
    note: Note, path: MerklePath, recipient: bytes
) -> Dict[str, Any]:
    """Witness and public signals for the withdrawal circuit (snarkjs input)."""
    return {
        "root": str(path.root),
        "nullifierHash": str(note.nullifier_hash),
        "recipient": str(recipient_to_field(recipient)),
        "nullifier": str(note.nullifier),
        "secret": str(note.secret),
        "pathElements": [str(e) for e in path.elements],
        "pathIndices": list(path.indices),
    }

