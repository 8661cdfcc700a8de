import random

import pytest

from zkstate.hash_functions.hash_function import HashFunction
from zkstate.merkle_tree.merkle_tree import MerkleProof, MerkleTree

hash_function = HashFunction("OP_SHA256")


def h(left: bytes, right: bytes) -> bytes:
    return hash_function.evaluate([left, right])


A, B, C, D = (bytes([i]) * 32 for i in range(1, 5))


def test_four_leaves():
    tree = MerkleTree.from_leaves(2, hash_function, [A, B, C, D])

    assert tree.root == h(h(A, B), h(C, D))
    assert [tree.leaf(i) for i in range(4)] == [A, B, C, D]


@pytest.mark.parametrize(
    ("index", "siblings"),
    [
        (0, (B, h(C, D))),
        (1, (A, h(C, D))),
        (2, (D, h(A, B))),
        (3, (C, h(A, B))),
    ],
)
def test_authentication_path(index, siblings):
    tree = MerkleTree.from_leaves(2, hash_function, [A, B, C, D])
    proof = tree.authentication_path(index)

    assert proof == MerkleProof(index=index, siblings=siblings)
    assert tree.verify(tree.root, tree.leaf(index), proof)


def test_proof_bits():
    assert MerkleProof(index=1, siblings=(A, B)).bits() == [True, False]
    assert MerkleProof(index=6, siblings=(A, B, C)).bits() == [False, True, True]


def test_empty_tree():
    empty_leaf = b"\xee" * 32
    tree = MerkleTree(3, hash_function, empty_leaf)

    level_1 = h(empty_leaf, empty_leaf)
    level_2 = h(level_1, level_1)
    assert tree.root == h(level_2, level_2)
    assert tree.leaf(5) == empty_leaf
    assert tree.authentication_path(5).siblings == (empty_leaf, level_1, level_2)


def test_default_empty_leaf():
    tree = MerkleTree(1, HashFunction("OP_SHA1"))

    assert tree.empty_leaf == bytes(20)
    assert tree.root == HashFunction("OP_SHA1").evaluate([bytes(40)])


def test_update():
    tree = MerkleTree.from_leaves(2, hash_function, [A, B, C, D])
    proof = tree.authentication_path(1)
    new_leaf = b"\xbb" * 32

    new_root = tree.update(1, new_leaf)

    assert new_root == h(h(A, new_leaf), h(C, D))
    assert new_root == tree.root
    assert new_root == tree.root_from_path(new_leaf, proof)
    assert tree.authentication_path(1) == proof
    assert tree.verify(new_root, new_leaf, proof)
    assert not tree.verify(new_root, B, proof)


def test_only_one_leaf_changes():
    rng = random.Random(0)
    leaves = [rng.randbytes(32) for _ in range(8)]
    tree = MerkleTree.from_leaves(3, hash_function, leaves)

    tree.update(6, rng.randbytes(32))

    assert [tree.leaf(i) for i in range(8) if i != 6] == [leaf for i, leaf in enumerate(leaves) if i != 6]


def test_sparse_deep_tree():
    tree = MerkleTree(20, hash_function)
    empty_root = tree.root

    tree.update(2**20 - 1, A)
    proof = tree.authentication_path(2**20 - 1)

    assert len(proof.siblings) == 20
    assert tree.verify(tree.root, A, proof)
    assert tree.root_from_path(tree.empty_leaf, proof) == empty_root


def test_verify_rejects_wrong_depth():
    tree = MerkleTree.from_leaves(2, hash_function, [A, B, C, D])
    proof = tree.authentication_path(0)

    assert not tree.verify(tree.root, A, MerkleProof(index=0, siblings=proof.siblings[:1]))


@pytest.mark.parametrize("index", [-1, 4, 100])
def test_index_out_of_range(index):
    tree = MerkleTree(2, hash_function)

    with pytest.raises(IndexError, match="Leaf index out of range"):
        tree.leaf(index)
    with pytest.raises(IndexError, match="Leaf index out of range"):
        tree.update(index, A)
    with pytest.raises(IndexError, match="Leaf index out of range"):
        tree.authentication_path(index)


def test_invalid_depth():
    with pytest.raises(ValueError, match="depth of the tree must be positive"):
        MerkleTree(0, hash_function)
