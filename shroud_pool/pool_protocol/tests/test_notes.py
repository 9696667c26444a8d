"""Tests for deposit notes and the client-side tree mirror"""

import json

import pytest

from shroud_pool.pool_protocol.merkle import IncrementalMerkleTree, verify_path
from shroud_pool.pool_protocol.mimc import hash_pair, multi_hash
from shroud_pool.pool_protocol.notes import (
    ClientMerkleTree,
    Note,
    build_circuit_input,
    generate_note,
    load_note,
    save_note,
)
from shroud_pool.pool_protocol.types import DepositEvent, WithdrawalEvent

RECIPIENT = b"\x33" * 32


class TestNote:
    def test_derivations(self):
        note = Note(nullifier=1, secret=2)
        assert note.commitment == multi_hash([1, 2])
        assert note.nullifier_hash == multi_hash([1])

    def test_generated_notes_fit_31_bytes(self):
        note = generate_note()
        assert note.nullifier < 2**248
        assert note.secret < 2**248
        assert generate_note() != note

    def test_save_and_load(self, tmp_path):
        note = Note(nullifier=5, secret=6)
        path = save_note(tmp_path / "note.json", note, leaf_index=3)

        loaded, leaf_index = load_note(path)
        assert loaded == note
        assert leaf_index == 3
        data = json.loads(path.read_text())
        assert data["commitment"] == str(note.commitment)

    def test_load_without_leaf_index(self, tmp_path):
        path = save_note(tmp_path / "note.json", Note(nullifier=5, secret=6))
        assert load_note(path)[1] is None

    def test_tampered_commitment(self, tmp_path):
        path = save_note(tmp_path / "note.json", Note(nullifier=5, secret=6))
        data = json.loads(path.read_text())
        data["secret"] = "7"
        path.write_text(json.dumps(data))
        with pytest.raises(ValueError):
            load_note(path)


class TestClientMerkleTree:
    def test_roots_track_incremental_tree(self):
        client = ClientMerkleTree(depth=4)
        pool_tree = IncrementalMerkleTree(depth=4)
        assert client.root() == pool_tree.last_root()

        for leaf in (10, 20, 30, 40, 50):
            client.insert(leaf)
            assert client.root() == pool_tree.insert(leaf)

    def test_paths_verify_for_every_leaf(self):
        client = ClientMerkleTree(depth=3)
        pool_tree = IncrementalMerkleTree(depth=3)
        leaves = [101, 202, 303, 404, 505]
        roots = []
        for leaf in leaves:
            client.insert(leaf)
            roots.append(pool_tree.insert(leaf))

        for index, leaf in enumerate(leaves):
            path = client.path(index)
            assert path.root == roots[index]
            assert len(path.elements) == 3
            assert verify_path(leaf, path.elements, path.indices, roots[index])
            assert pool_tree.is_known_root(path.root)

    def test_earlier_path_does_not_fold_to_latest_root(self):
        client = ClientMerkleTree(depth=2)
        client.insert(10)
        client.insert(20)
        client.insert(30)

        path = client.path(1)
        assert path.elements == [10, hash_pair(10, 0)]
        assert path.indices == [1, 0]
        assert not verify_path(20, path.elements, path.indices, client.root())

    def test_path_bounds(self):
        client = ClientMerkleTree(depth=2)
        client.insert(1)
        with pytest.raises(IndexError):
            client.path(1)

    def test_index_of(self):
        client = ClientMerkleTree(depth=2)
        client.insert(7)
        assert client.index_of(7) == 0
        with pytest.raises(KeyError):
            client.index_of(8)

    def test_capacity(self):
        client = ClientMerkleTree(depth=1)
        client.insert(1)
        client.insert(2)
        with pytest.raises(ValueError):
            client.insert(3)

    def test_rebuild_from_events(self):
        events = [
            DepositEvent(commitment=20, leaf_index=1),
            WithdrawalEvent(nullifier_hash=9, recipient=RECIPIENT),
            DepositEvent(commitment=10, leaf_index=0),
        ]
        client = ClientMerkleTree.rebuild_from_events(events, depth=3)
        assert client.leaves == [10, 20]

    def test_rebuild_detects_gap(self):
        events = [DepositEvent(commitment=20, leaf_index=1)]
        with pytest.raises(ValueError):
            ClientMerkleTree.rebuild_from_events(events, depth=3)


def test_circuit_input():
    note = Note(nullifier=5, secret=6)
    client = ClientMerkleTree(depth=2)
    client.insert(note.commitment)
    path = client.path(0)

    data = build_circuit_input(note, path, RECIPIENT)

    assert data["root"] == str(path.root)
    assert data["nullifierHash"] == str(note.nullifier_hash)
    assert data["recipient"] == str(int.from_bytes(RECIPIENT, "big"))
    assert data["pathIndices"] == [0, 0]
    assert data["pathElements"] == ["0", "0"]
