"""Gadget proving the update of a single leaf of a state tree."""

import logging

from zkstate.constraint_system.constraint_system import ConstraintSystem, Variable
from zkstate.hash_functions.hash_function import HashFunction
from zkstate.merkle_tree.merkle_path import AuthenticationPath, MerklePathCheck, MerklePathRoot
from zkstate.merkle_tree.merkle_tree import MerkleProof
from zkstate.parameters import DEFAULT_HASH_FUNCTION
from zkstate.state.leaf_encoder import LeafEncoder
from zkstate.state.records import RecordState
from zkstate.util.utility_functions import bits_to_index

logger = logging.getLogger(__name__)


class StateUpdateGadget:
    """Gadget proving that a state tree with root `old_root` becomes a tree with root `result()` by changing the leaf
    at position `index_bits` from `before` to `after`, and nothing else.

    The gadget is made of:
        - two `LeafEncoder`, computing the leaves of `before` and `after`
        - one `AuthenticationPath`, shared by the two gadgets below
        - one `MerklePathCheck`, verifying that the leaf of `before` belongs to the tree with root `old_root`
        - one `MerklePathRoot`, computing the root of the tree in which the leaf of `after` replaces the leaf of
            `before`

    The gadget works for any record shape, e.g., accounts (`ACCOUNT`) or balances (`BALANCE`): the shape, and hence
    the depth of the tree, is read from `before` and `after`.

    Lifecycle:
        construction -> `generate_witness` -> `generate_constraints` -> `result`. `generate_constraints` does not
        depend on the witness and can be called before `generate_witness`, or without it. Each of the two methods can
        be called only once.

    Example:
        >>> cs = ConstraintSystem()
        >>> old_root = cs.allocate_variable("old_root")
        >>> index_bits = cs.allocate_variable_array(BALANCE.tree_depth, "token_id")
        >>> before = RecordGadget(cs, BALANCE, hash_function, "balance_before")
        >>> after = RecordGadget(cs, BALANCE, hash_function, "balance_after")
        >>> update = StateUpdateGadget(cs, old_root, index_bits, before.state(), after.state(), hash_function)
        >>> update.generate_constraints()
        >>> new_root = update.result()
    """

    def __init__(
        self,
        cs: ConstraintSystem,
        old_root: Variable | bytes,
        index_bits: list[Variable],
        before: RecordState,
        after: RecordState,
        hash_function: HashFunction | None = None,
        prefix: str = "update",
    ):
        """Initialise a StateUpdateGadget. No constraint is added to `cs`.

        Args:
            cs (ConstraintSystem): The constraint system.
            old_root (Variable | bytes): Root of the tree before the update, either a variable (e.g., the result of a
                previous update) or a public constant.
            index_bits (list[Variable]): Bits of the position of the updated leaf, least significant bit first.
            before (RecordState): Fields of the record before the update.
            after (RecordState): Fields of the record after the update.
            hash_function (HashFunction | None): Hash function of the tree. Defaults to `DEFAULT_HASH_FUNCTION`.
            prefix (str): Prefix of the names of the allocated variables.

        Raises:
            ValueError: If `before` and `after` do not have the same shape, if their number of fields does not match
                the shape, or if the number of index bits is not the depth of the tree.
        """
        if before.shape != after.shape:
            msg = "The records before and after the update must have the same shape: "
            msg += f"before: {before.shape.name}, after: {after.shape.name}"
            raise ValueError(msg)
        for label, state in (("before", before), ("after", after)):
            if len(state.fields) != state.shape.arity:
                msg = "The number of fields does not match the shape: "
                msg += f"{label}: {len(state.fields)}, shape: {state.shape.name}, arity: {state.shape.arity}"
                raise ValueError(msg)
        if len(index_bits) != before.shape.tree_depth:
            msg = "The number of index bits must be equal to the depth of the tree: "
            msg += f"len(index_bits): {len(index_bits)}, tree_depth: {before.shape.tree_depth}"
            raise ValueError(msg)

        hash_function = hash_function if hash_function is not None else HashFunction(DEFAULT_HASH_FUNCTION)

        self.cs = cs
        self.shape = before.shape
        self.hash_function = hash_function
        self.before = before
        self.after = after

        self.leaf_before = LeafEncoder(cs, list(before.fields), hash_function, f"{prefix}.leaf_before")
        self.leaf_after = LeafEncoder(cs, list(after.fields), hash_function, f"{prefix}.leaf_after")

        self.path = AuthenticationPath(cs, self.shape.tree_depth, index_bits, hash_function, f"{prefix}.path")
        self.proof_verifier_before = MerklePathCheck(
            cs, self.leaf_before.result(), old_root, self.path, f"{prefix}.path_before"
        )
        self.root_calculator_after = MerklePathRoot(cs, self.leaf_after.result(), self.path, f"{prefix}.path_after")

        self.__is_witness_generated = False
        self.__are_constraints_generated = False

    def generate_witness(self, proof: MerkleProof | list[bytes]):
        """Fill the leaves, the authentication path and the intermediate nodes.

        The fields of the records, the index bits and (if it is a variable) the old root must already be assigned.

        Args:
            proof (MerkleProof | list[bytes]): The authentication path of the updated leaf, or its sibling digests.

        Raises:
            RuntimeError: If the witness has already been generated.
            ValueError: If the authentication path does not have the depth of the tree, or if its position does not
                match the assigned index bits.
        """
        if self.__is_witness_generated:
            msg = "The witness has already been generated."
            raise RuntimeError(msg)

        if isinstance(proof, MerkleProof):
            index = bits_to_index(self.path.directions())
            if index != proof.index:
                msg = "The position of the authentication path does not match the index bits: "
                msg += f"proof.index: {proof.index}, index: {index}"
                raise ValueError(msg)
            siblings = list(proof.siblings)
        else:
            siblings = list(proof)

        self.leaf_before.generate_witness()
        self.leaf_after.generate_witness()

        self.path.generate_witness(siblings)
        self.proof_verifier_before.generate_witness()
        self.root_calculator_after.generate_witness()

        self.__is_witness_generated = True
        logger.debug(
            "Witness of %s update generated: new root %s",
            self.shape.name,
            self.cs.value(self.root_calculator_after.result()).hex(),
        )

    def generate_constraints(self):
        """Add the constraints of the update to the constraint system.

        The constraints include the well-formedness of the path and of the records: every field of `before` and
        `after` is constrained to the size prescribed by the shape, so that the leaf hashes are not malleable.

        Raises:
            RuntimeError: If the constraints have already been generated.
        """
        if self.__are_constraints_generated:
            msg = "The constraints have already been generated."
            raise RuntimeError(msg)

        self.path.generate_constraints()
        for label, state in (("before", self.before), ("after", self.after)):
            for name, variable, size in zip(
                self.shape.field_names, state.fields, self.shape.sizes(self.hash_function)
            ):
                self.cs.enforce_size(variable, size, f"{label}.{name} has {size} bytes")

        self.leaf_before.generate_constraints()
        self.leaf_after.generate_constraints()

        self.proof_verifier_before.generate_constraints()
        self.root_calculator_after.generate_constraints()

        self.__are_constraints_generated = True

    def result(self) -> Variable:
        """Return the variable holding the root of the tree after the update.

        Raises:
            RuntimeError: If the constraints have not been generated.
        """
        if not self.__are_constraints_generated:
            msg = "The constraints must be generated before reading the result."
            raise RuntimeError(msg)
        return self.root_calculator_after.result()
