import logging
import random

import pytest

from zkstate.constraint_system.constraint_system import ConstraintSystem
from zkstate.hash_functions.hash_function import HashFunction
from zkstate.merkle_tree.merkle_path import AuthenticationPath, MerklePathCheck, MerklePathRoot
from zkstate.merkle_tree.merkle_tree import MerkleProof, MerkleTree

DEPTH = 3


def random_tree(hash_function: HashFunction, seed: int = 0) -> MerkleTree:
    rng = random.Random(seed)
    leaves = [rng.randbytes(hash_function.digest_size) for _ in range(2**DEPTH)]
    return MerkleTree.from_leaves(DEPTH, hash_function, leaves)


def build_check(hash_function, leaf, root, proof, public_root=False):
    """Return a constraint system verifying that `leaf` is at the position of `proof` in the tree with root `root`."""
    depth = len(proof.siblings)
    cs = ConstraintSystem()
    leaf_variable = cs.allocate_variable("leaf")
    root_variable = root if public_root else cs.allocate_variable("root")
    index_bits = cs.allocate_variable_array(depth, "index")

    path = AuthenticationPath(cs, depth, index_bits, hash_function, "path")
    check = MerklePathCheck(cs, leaf_variable, root_variable, path, "check")
    path.generate_constraints()
    check.generate_constraints()

    cs.assign(leaf_variable, leaf)
    if not public_root:
        cs.assign(root_variable, root)
    cs.assign_array(index_bits, proof.bits())
    path.generate_witness(list(proof.siblings))
    check.generate_witness()

    return cs, check


def flip(data: bytes, position: int = 0) -> bytes:
    return data[:position] + bytes([data[position] ^ 1]) + data[position + 1 :]


@pytest.mark.parametrize("opcodes", ["OP_SHA256", "OP_HASH256", "OP_SHA1"])
@pytest.mark.parametrize("index", range(2**DEPTH))
def test_inclusion(opcodes, index, save_scripts):
    hash_function = HashFunction(opcodes)
    tree = random_tree(hash_function)

    cs, _ = build_check(hash_function, tree.leaf(index), tree.root, tree.authentication_path(index))

    assert cs.is_satisfied()

    save_scripts(cs.locking_script(), cs.unlocking_script(), "merkle_path", f"inclusion_{opcodes}_{index}")


@pytest.mark.parametrize("index", range(2**DEPTH))
@pytest.mark.parametrize("level", range(DEPTH))
def test_inclusion_flipped_sibling(index, level):
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)
    proof = tree.authentication_path(index)
    siblings = list(proof.siblings)
    siblings[level] = flip(siblings[level])

    cs, _ = build_check(hash_function, tree.leaf(index), tree.root, MerkleProof(index, tuple(siblings)))

    assert not cs.is_satisfied()


@pytest.mark.parametrize("index", range(2**DEPTH))
def test_inclusion_wrong_leaf(index):
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    cs, _ = build_check(hash_function, flip(tree.leaf(index), 5), tree.root, tree.authentication_path(index))

    assert not cs.is_satisfied()


def test_inclusion_wrong_position():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)
    proof = tree.authentication_path(2)

    cs, _ = build_check(hash_function, tree.leaf(2), tree.root, MerkleProof(3, proof.siblings))

    assert not cs.is_satisfied()


def test_inclusion_public_root():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    cs, _ = build_check(hash_function, tree.leaf(4), tree.root, tree.authentication_path(4), public_root=True)
    assert cs.is_satisfied()

    cs, _ = build_check(hash_function, tree.leaf(4), flip(tree.root), tree.authentication_path(4), public_root=True)
    assert not cs.is_satisfied()


def test_forged_intermediate_node():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)
    wrong_leaf = flip(tree.leaf(1))

    cs, check = build_check(hash_function, wrong_leaf, tree.root, tree.authentication_path(1))
    assert not cs.is_satisfied()

    # Claiming the right nodes from level 1 upwards breaks the hash constraint at level 0
    honest_cs, honest_check = build_check(hash_function, tree.leaf(1), tree.root, tree.authentication_path(1))
    for variable, honest_variable in zip(check.walk.nodes[1:], honest_check.walk.nodes[1:]):
        cs.assign(variable, honest_cs.value(honest_variable))
    assert not cs.is_satisfied()


def test_non_boolean_index_bit():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    cs, check = build_check(hash_function, tree.leaf(1), tree.root, tree.authentication_path(1))
    cs.assign(check.path.index_bits[0], b"\x02")

    assert not cs.is_satisfied()


def test_root_computation():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)
    proof = tree.authentication_path(5)
    new_leaf = b"\x42" * 32

    cs = ConstraintSystem()
    leaf = cs.allocate_variable("leaf")
    index_bits = cs.allocate_variable_array(DEPTH, "index")
    path = AuthenticationPath(cs, DEPTH, index_bits, hash_function, "path")
    root_calculator = MerklePathRoot(cs, leaf, path, "root")
    path.generate_constraints()
    root_calculator.generate_constraints()

    cs.assign(leaf, new_leaf)
    cs.assign_array(index_bits, proof.bits())
    path.generate_witness(list(proof.siblings))
    root_calculator.generate_witness()

    assert cs.value(root_calculator.result()) == tree.update(5, new_leaf)
    assert cs.is_satisfied()

    # The result is an output: any other value is rejected
    cs.assign(root_calculator.result(), flip(cs.value(root_calculator.result())))
    assert not cs.is_satisfied()


def test_mismatching_witness_logs_warning(caplog):
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    with caplog.at_level(logging.WARNING, logger="zkstate.merkle_tree.merkle_path"):
        build_check(hash_function, tree.leaf(0), flip(tree.root), tree.authentication_path(0))

    assert "does not match the expected root" in caplog.text


def test_matching_witness_does_not_log(caplog):
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    with caplog.at_level(logging.WARNING, logger="zkstate.merkle_tree.merkle_path"):
        build_check(hash_function, tree.leaf(0), tree.root, tree.authentication_path(0))

    assert caplog.text == ""


def test_path_length_mismatch():
    hash_function = HashFunction("OP_SHA256")
    cs = ConstraintSystem()
    index_bits = cs.allocate_variable_array(DEPTH, "index")
    path = AuthenticationPath(cs, DEPTH, index_bits, hash_function, "path")

    with pytest.raises(ValueError, match="must be equal to the depth of the tree"):
        path.generate_witness([bytes(32)] * (DEPTH - 1))
    with pytest.raises(ValueError, match="must be equal to the depth of the tree"):
        path.generate_witness([bytes(32)] * (DEPTH + 1))


def test_sibling_size_mismatch():
    hash_function = HashFunction("OP_SHA256")
    cs = ConstraintSystem()
    index_bits = cs.allocate_variable_array(DEPTH, "index")
    path = AuthenticationPath(cs, DEPTH, index_bits, hash_function, "path")

    with pytest.raises(ValueError, match="must be digests of the hash function"):
        path.generate_witness([bytes(32), bytes(20), bytes(32)])


def test_short_sibling_is_rejected_by_constraints():
    hash_function = HashFunction("OP_SHA256")
    tree = random_tree(hash_function)

    cs, check = build_check(hash_function, tree.leaf(0), tree.root, tree.authentication_path(0))
    cs.assign(check.path.siblings[2], bytes(31))

    assert not cs.is_satisfied()


@pytest.mark.parametrize(("depth", "n_bits"), [(0, 0), (3, 2), (2, 3)])
def test_invalid_path_shape(depth, n_bits):
    cs = ConstraintSystem()
    index_bits = cs.allocate_variable_array(n_bits, "index")

    with pytest.raises(ValueError, match="depth"):
        AuthenticationPath(cs, depth, index_bits, HashFunction(), "path")
