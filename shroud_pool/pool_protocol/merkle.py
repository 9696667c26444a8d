"""
Incremental Merkle tree over deposit commitments.

Append-only accumulator using the filled-subtree technique: each insertion
recomputes the root in O(depth) hashes and caches the last node written
at every level. A node at an even index is paired with
the cached node of its level (ZERO_VALUE before the first write), the same
rule the withdrawal client replays, so an authentication path is only
valid against the root produced when its leaf was inserted. The most
recent ROOT_HISTORY_SIZE roots are retained so such proofs still verify
after later deposits.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from .config import ROOT_HISTORY_SIZE, TREE_LEVELS, ZERO_VALUE
from .exceptions import InvalidArgument, StorageError, TreeFull
from .mimc import hash_pair
from .types import to_field

PairHash = Callable[[int, int], int]


class IncrementalMerkleTree:
    """
    Append-only Merkle tree of fixed depth.

    Example:
        >>> tree = IncrementalMerkleTree()
        >>> root = tree.insert(commitment)
        >>> tree.is_known_root(root)
        True
    """

    def __init__(
        self,
        depth: int = TREE_LEVELS,
        history_size: int = ROOT_HISTORY_SIZE,
        hasher: PairHash = hash_pair,
    ) -> None:
        if depth < 1:
            raise ValueError("depth must be >= 1")
        if history_size < 1:
            raise ValueError("history_size must be >= 1")
        self._depth = depth
        self._history_size = history_size
        self._hasher = hasher
        self._next_index = 0
        self._filled_subtrees: List[int] = [ZERO_VALUE] * depth
        self._roots: Deque[int] = deque(maxlen=history_size)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def capacity(self) -> int:
        return 2**self._depth

    @property
    def next_index(self) -> int:
        return self._next_index

    @property
    def filled_subtrees(self) -> List[int]:
        return list(self._filled_subtrees)

    @property
    def roots(self) -> List[int]:
        """Root history, oldest first."""
        return list(self._roots)

    def is_full(self) -> bool:
        return self._next_index >= self.capacity

    def insert(self, leaf: int) -> int:
        """
        Append a leaf and return the new root.

        Raises:
            TreeFull: If every leaf slot is taken. Nothing is mutated.
        """
        if self.is_full():
            raise TreeFull(f"all {self.capacity} leaves are in use")

        current_index = self._next_index
        current_hash = leaf

        for level in range(self._depth):
            if current_index % 2 == 0:
                left = current_hash
                right = self._filled_subtrees[level]
                self._filled_subtrees[level] = current_hash
            else:
                left = self._filled_subtrees[level]
                right = current_hash
            current_hash = self._hasher(left, right)
            current_index //= 2

        # deque(maxlen=...) evicts the oldest root
        self._roots.append(current_hash)
        self._next_index += 1
        return current_hash

    def is_known_root(self, root: int) -> bool:
        if root == ZERO_VALUE:
            return False
        return root in self._roots

    def last_root(self) -> int:
        if not self._roots:
            return ZERO_VALUE
        return self._roots[-1]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "depth": self._depth,
            "next_index": self._next_index,
            "filled_subtrees": list(self._filled_subtrees),
            "roots": list(self._roots),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        history_size: int = ROOT_HISTORY_SIZE,
        hasher: PairHash = hash_pair,
    ) -> "IncrementalMerkleTree":
        """
        Restore a tree from its persisted layout.

        Raises:
            StorageError: If the layout is inconsistent.
        """
        try:
            depth = int(data["depth"])
            next_index = int(data["next_index"])
            filled = [to_field(v, "filled_subtree") for v in data["filled_subtrees"]]
            roots = [to_field(v, "root") for v in data["roots"]]
        except (KeyError, TypeError, ValueError, InvalidArgument) as exc:
            raise StorageError(f"malformed tree layout: {exc}") from exc

        if depth < 1:
            raise StorageError(f"invalid tree depth {depth}")
        tree = cls(depth=depth, history_size=history_size, hasher=hasher)
        if len(filled) != depth:
            raise StorageError(
                f"expected {depth} filled subtrees, found {len(filled)}"
            )
        if not 0 <= next_index <= tree.capacity:
            raise StorageError(f"next_index {next_index} out of range")
        if len(roots) > history_size:
            raise StorageError(f"root history exceeds {history_size} entries")
        if len(roots) > next_index:
            raise StorageError("more roots than inserted leaves")

        tree._next_index = next_index
        tree._filled_subtrees = filled
        tree._roots.extend(roots)
        return tree


def compute_root(
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[int],
    hasher: Optional[PairHash] = None,
) -> int:
    """
    Fold a leaf up an authentication path.

    ``path_indices[i] == 0`` means the running hash is the left child at
    level ``i``; ``1`` means it is the right child.
    """
    if len(path_elements) != len(path_indices):
        raise ValueError("path_elements and path_indices differ in length")
    hasher = hasher or hash_pair

    current = leaf
    for sibling, index in zip(path_elements, path_indices):
        if index == 0:
            current = hasher(current, sibling)
        elif index == 1:
            current = hasher(sibling, current)
        else:
            raise ValueError(f"path index must be 0 or 1, got {index!r}")
    return current


def verify_path(
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[int],
    root: int,
) -> bool:
    """
    Verify a Merkle authentication path.

    Returns:
        True if path is valid, False otherwise
    """
    try:
        return compute_root(leaf, path_elements, path_indices) == root
    except ValueError:
        return False
