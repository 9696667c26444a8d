"""
Tests for the incremental Merkle tree.

Tests cover:
- Empty tree and first inserts against hand-computed roots
- Known full-depth roots for a fixed deposit sequence
- Root history window and eviction
- Capacity limit
- Persistence layout validation
- Authentication path folding
"""

import pytest

from shroud_pool.pool_protocol.config import ROOT_HISTORY_SIZE, TREE_LEVELS
from shroud_pool.pool_protocol.exceptions import StorageError, TreeFull
from shroud_pool.pool_protocol.merkle import (
    IncrementalMerkleTree,
    compute_root,
    verify_path,
)
from shroud_pool.pool_protocol.mimc import hash_pair


def _fold_with_zeros(node, depth, start=0):
    for _ in range(start, depth):
        node = hash_pair(node, 0)
    return node


class TestEmptyTree:
    def test_defaults(self):
        tree = IncrementalMerkleTree()
        assert tree.depth == TREE_LEVELS
        assert tree.capacity == 2**TREE_LEVELS
        assert tree.next_index == 0
        assert tree.filled_subtrees == [0] * TREE_LEVELS
        assert tree.roots == []

    def test_last_root_is_zero(self):
        assert IncrementalMerkleTree().last_root() == 0

    def test_zero_root_never_known(self):
        tree = IncrementalMerkleTree(depth=3)
        assert not tree.is_known_root(0)
        tree.insert(5)
        assert not tree.is_known_root(0)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            IncrementalMerkleTree(depth=0)
        with pytest.raises(ValueError):
            IncrementalMerkleTree(history_size=0)


class TestInsert:
    def test_first_insert_root(self):
        """C1 alone: every level pairs the running hash with zero."""
        tree = IncrementalMerkleTree(depth=4)
        root = tree.insert(11)
        assert root == _fold_with_zeros(11, 4)
        assert tree.next_index == 1
        assert tree.last_root() == root
        assert tree.is_known_root(root)

    def test_second_insert_root(self):
        """C1, C2: level 1 pairs H(C1, C2) with the cached H(C1, 0)."""
        tree = IncrementalMerkleTree(depth=2)
        r1 = tree.insert(11)
        r2 = tree.insert(22)
        assert r1 == hash_pair(hash_pair(11, 0), 0)
        assert r2 == hash_pair(hash_pair(11, 22), hash_pair(11, 0))
        assert tree.roots == [r1, r2]

    def test_even_index_pairs_with_cached_subtree(self):
        tree = IncrementalMerkleTree(depth=2)
        tree.insert(1)
        tree.insert(2)
        root = tree.insert(3)
        assert root == hash_pair(hash_pair(1, 2), hash_pair(3, 1))
        assert tree.filled_subtrees == [3, hash_pair(1, 2)]

    def test_third_insert_depth_three(self):
        tree = IncrementalMerkleTree(depth=3)
        for leaf in (1, 2, 3):
            root = tree.insert(leaf)
        left = hash_pair(hash_pair(1, 2), hash_pair(3, 1))
        right = hash_pair(hash_pair(1, 2), hash_pair(1, 0))
        assert root == hash_pair(left, right)

    def test_four_leaves_full_depth_two(self):
        tree = IncrementalMerkleTree(depth=2)
        for leaf in (1, 2, 3, 4):
            root = tree.insert(leaf)
        assert root == hash_pair(hash_pair(1, 2), hash_pair(3, 4))
        assert tree.is_full()

    def test_insert_is_deterministic(self):
        a = IncrementalMerkleTree(depth=5)
        b = IncrementalMerkleTree(depth=5)
        assert [a.insert(v) for v in (7, 8, 9)] == [b.insert(v) for v in (7, 8, 9)]

    def test_full_tree_rejects_without_mutation(self):
        tree = IncrementalMerkleTree(depth=1)
        tree.insert(1)
        tree.insert(2)
        before = tree.to_dict()
        with pytest.raises(TreeFull):
            tree.insert(3)
        assert tree.to_dict() == before


class TestRootHistory:
    def test_window_keeps_last_thirty(self):
        tree = IncrementalMerkleTree(depth=6)
        roots = [tree.insert(leaf) for leaf in range(1, ROOT_HISTORY_SIZE + 2)]

        assert len(tree.roots) == ROOT_HISTORY_SIZE
        assert not tree.is_known_root(roots[0])
        for root in roots[1:]:
            assert tree.is_known_root(root)
        assert tree.roots == roots[1:]

    def test_custom_history_size(self):
        tree = IncrementalMerkleTree(depth=3, history_size=2)
        r1, r2, r3 = (tree.insert(v) for v in (1, 2, 3))
        assert not tree.is_known_root(r1)
        assert tree.is_known_root(r2)
        assert tree.is_known_root(r3)

    def test_arbitrary_value_unknown(self):
        tree = IncrementalMerkleTree(depth=3)
        tree.insert(1)
        assert not tree.is_known_root(123456789)


class TestPersistence:
    def test_round_trip_continues_identically(self):
        tree = IncrementalMerkleTree(depth=4)
        for leaf in (3, 5, 7):
            tree.insert(leaf)
        restored = IncrementalMerkleTree.from_dict(tree.to_dict())

        assert restored.to_dict() == tree.to_dict()
        assert restored.insert(9) == tree.insert(9)

    def test_missing_key(self):
        layout = IncrementalMerkleTree(depth=2).to_dict()
        del layout["roots"]
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)

    def test_wrong_filled_length(self):
        layout = IncrementalMerkleTree(depth=3).to_dict()
        layout["filled_subtrees"] = [0, 0]
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)

    def test_next_index_out_of_range(self):
        layout = IncrementalMerkleTree(depth=2).to_dict()
        layout["next_index"] = 5
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)

    def test_more_roots_than_leaves(self):
        layout = IncrementalMerkleTree(depth=2).to_dict()
        layout["roots"] = [1]
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)

    def test_non_field_values(self):
        tree = IncrementalMerkleTree(depth=2)
        tree.insert(1)
        layout = tree.to_dict()
        layout["roots"] = [-1]
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)

    def test_zero_depth(self):
        layout = {"depth": 0, "next_index": 0, "filled_subtrees": [], "roots": []}
        with pytest.raises(StorageError):
            IncrementalMerkleTree.from_dict(layout)


class TestKnownRoots:
    """Roots of the full-depth pool tree for the leaves 11 then 22."""

    R1 = 1894340077987149521125935221702140654381203761667444140013539963592503884487
    R2 = 11052674773412470689260842587208499554404481573377337113355296539806226112609

    def test_first_two_roots(self):
        tree = IncrementalMerkleTree()
        assert tree.insert(11) == self.R1
        assert tree.insert(22) == self.R2
        assert tree.roots == [self.R1, self.R2]
        assert self.R2 != self.R1

    def test_both_roots_known(self):
        tree = IncrementalMerkleTree()
        tree.insert(11)
        tree.insert(22)
        assert tree.is_known_root(self.R1)
        assert tree.is_known_root(self.R2)
        assert not tree.is_known_root(0)


class TestPaths:
    def test_compute_root_left_and_right(self):
        assert compute_root(1, [2], [0]) == hash_pair(1, 2)
        assert compute_root(1, [2], [1]) == hash_pair(2, 1)

    def test_path_for_second_leaf(self):
        tree = IncrementalMerkleTree(depth=2)
        tree.insert(10)
        root = tree.insert(20)
        elements = [10, hash_pair(10, 0)]
        assert verify_path(20, elements, [1, 0], root)
        assert not verify_path(20, elements, [0, 0], root)
        assert not verify_path(20, [10, 0], [1, 0], root)

    def test_invalid_paths(self):
        with pytest.raises(ValueError):
            compute_root(1, [2, 3], [0])
        with pytest.raises(ValueError):
            compute_root(1, [2], [2])
        assert verify_path(1, [2], [7], 0) is False
