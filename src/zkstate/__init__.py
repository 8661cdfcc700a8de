"""zkstate: A Python package for generating Bitcoin SV scripts proving updates of Merkle state trees.

The `zkstate` package provides gadgets that build constraint systems compiled to Bitcoin Script: the witness of the
circuit is pushed by an unlocking script, and the constraints are verified by a locking script. The main gadget,
`StateUpdateGadget`, proves that a single leaf of a fixed-depth Merkle tree (an account or a token balance) changed
from one record to another, and computes the root of the updated tree. Updates are chained by using the result of an
update as the old root of the next one.

Usage example:
    Prove the update of the balance of the token at position 1 of a tree of depth 2:

    >>> from zkstate.constraint_system.constraint_system import ConstraintSystem
    >>> from zkstate.hash_functions.hash_function import HashFunction
    >>> from zkstate.merkle_tree.merkle_tree import MerkleTree
    >>> from zkstate.state.records import BALANCE, Balance, RecordGadget
    >>> from zkstate.state.state_update import StateUpdateGadget
    >>> from zkstate.util.utility_functions import index_to_bits
    >>>
    >>> hash_function = HashFunction("OP_SHA256")
    >>> shape = BALANCE.with_overrides(tree_depth=2)
    >>> tree = MerkleTree(shape.tree_depth, hash_function, shape.empty_leaf(hash_function))
    >>> before, after = shape.empty_record(hash_function), Balance(100, bytes(32))
    >>>
    >>> cs = ConstraintSystem()
    >>> old_root = cs.allocate_variable("old_root")
    >>> token_id = cs.allocate_variable_array(shape.tree_depth, "token_id")
    >>> balance_before = RecordGadget(cs, shape, hash_function, "balance_before")
    >>> balance_after = RecordGadget(cs, shape, hash_function, "balance_after")
    >>> update = StateUpdateGadget(
    ...     cs, old_root, token_id, balance_before.state(), balance_after.state(), hash_function
    ... )
    >>> update.generate_constraints()
    >>>
    >>> cs.assign(old_root, tree.root)
    >>> cs.assign_array(token_id, index_to_bits(1, shape.tree_depth))
    >>> balance_before.generate_witness(before)
    >>> balance_after.generate_witness(after)
    >>> update.generate_witness(tree.authentication_path(1))
    >>> cs.value(update.result()) == tree.update(1, shape.leaf(after, hash_function))
    True
    >>> cs.is_satisfied()
    True
"""
