"""Gadgets verifying and recomputing Merkle paths."""

import logging

from tx_engine import Script

from zkstate.constraint_system.constraint_system import TRUE, ConstraintSystem, Variable
from zkstate.hash_functions.hash_function import HashFunction

logger = logging.getLogger(__name__)

# stack in:  [..., node, sibling, bit, left, right]
# stack out: [...] if (left, right) == ((sibling, node) if bit else (node, sibling)), else failure
SELECT_CHILDREN = Script.parse_string(
    "OP_TOALTSTACK OP_TOALTSTACK OP_IF OP_SWAP OP_ENDIF "
    "OP_FROMALTSTACK OP_ROT OP_EQUALVERIFY OP_FROMALTSTACK OP_EQUALVERIFY"
)


class AuthenticationPath:
    """Authentication path of a leaf in a binary Merkle tree.

    The path is made of the sibling digests, from the leaf level up to the level below the root, and of the bits of
    the position of the leaf, least significant bit first. The bit at level `i` is `1` if the node at level `i` is
    a right child. The same instance must be used to verify a leaf against the old root and to compute the new root:
    this is what guarantees that only one leaf of the tree changed.
    """

    def __init__(
        self,
        cs: ConstraintSystem,
        depth: int,
        index_bits: list[Variable],
        hash_function: HashFunction,
        prefix: str,
    ):
        """Initialise an AuthenticationPath, allocating one sibling variable per level.

        Args:
            cs (ConstraintSystem): The constraint system.
            depth (int): Depth of the tree.
            index_bits (list[Variable]): Bits of the position of the leaf, least significant bit first. They are owned
                by the caller.
            hash_function (HashFunction): Hash function of the tree.
            prefix (str): Prefix of the names of the allocated variables.

        Raises:
            ValueError: If `depth` is not positive or `index_bits` is not of length `depth`.
        """
        if depth <= 0:
            msg = "The depth of the tree must be positive: "
            msg += f"depth: {depth}"
            raise ValueError(msg)
        if len(index_bits) != depth:
            msg = "The number of index bits must be equal to the depth of the tree: "
            msg += f"len(index_bits): {len(index_bits)}, depth: {depth}"
            raise ValueError(msg)

        self.cs = cs
        self.depth = depth
        self.hash_function = hash_function
        self.index_bits = tuple(index_bits)
        self.siblings = tuple(cs.allocate_variable_array(depth, f"{prefix}.siblings"))

    def generate_witness(self, siblings: list[bytes]):
        """Assign the sibling digests.

        Raises:
            ValueError: If the number of siblings is not the depth of the tree, or if a sibling is not a digest.
        """
        if len(siblings) != self.depth:
            msg = "The length of the authentication path must be equal to the depth of the tree: "
            msg += f"len(siblings): {len(siblings)}, depth: {self.depth}"
            raise ValueError(msg)
        for level, sibling in enumerate(siblings):
            if len(sibling) != self.hash_function.digest_size:
                msg = "The siblings must be digests of the hash function: "
                msg += f"level: {level}, len(sibling): {len(sibling)}, digest_size: {self.hash_function.digest_size}"
                raise ValueError(msg)

        self.cs.assign_array(list(self.siblings), list(siblings))

    def generate_constraints(self):
        """Constrain the index bits to be booleans and the siblings to be digests."""
        for level, bit in enumerate(self.index_bits):
            self.cs.enforce_boolean(bit, f"index bit {level} is boolean")
        for level, sibling in enumerate(self.siblings):
            self.cs.enforce_size(sibling, self.hash_function.digest_size, f"sibling {level} is a digest")

    def directions(self) -> list[bool]:
        """Return, for each level, whether the node of the path is a right child."""
        return [self.cs.value(bit) == TRUE for bit in self.index_bits]

    def sibling_values(self) -> list[bytes]:
        """Return the assigned sibling digests."""
        return [self.cs.value(sibling) for sibling in self.siblings]


class MerklePathRoot:
    """Gadget computing the root of a Merkle tree from a leaf and an authentication path.

    For every level `i`, the gadget allocates the children `left_i`, `right_i` and the parent `node_{i+1}`, and
    enforces:
        - `(left_i, right_i) = (sibling_i, node_i)` if `bit_i` else `(node_i, sibling_i)`
        - `node_{i+1} = hash(left_i || right_i)`
    where `node_0` is the leaf. The root `node_depth` is the result of the gadget and is not constrained to be equal
    to anything.
    """

    def __init__(self, cs: ConstraintSystem, leaf: Variable, path: AuthenticationPath, prefix: str):
        """Initialise a MerklePathRoot gadget.

        Args:
            cs (ConstraintSystem): The constraint system.
            leaf (Variable): The leaf digest.
            path (AuthenticationPath): The authentication path. It is referenced, not copied.
            prefix (str): Prefix of the names of the allocated variables.
        """
        self.cs = cs
        self.leaf = leaf
        self.path = path
        self.left = cs.allocate_variable_array(path.depth, f"{prefix}.left")
        self.right = cs.allocate_variable_array(path.depth, f"{prefix}.right")
        self.nodes = [leaf, *cs.allocate_variable_array(path.depth, f"{prefix}.nodes")]

    def result(self) -> Variable:
        """Return the variable holding the computed root."""
        return self.nodes[-1]

    def generate_witness(self):
        """Compute the intermediate nodes from the assigned leaf, siblings and index bits."""
        node = self.cs.value(self.leaf)
        for level, (is_right, sibling) in enumerate(zip(self.path.directions(), self.path.sibling_values())):
            left, right = (sibling, node) if is_right else (node, sibling)
            node = self.path.hash_function.evaluate([left, right])
            self.cs.assign(self.left[level], left)
            self.cs.assign(self.right[level], right)
            self.cs.assign(self.nodes[level + 1], node)

    def generate_constraints(self):
        """Add the direction-selection and hash constraints of every level."""
        for level in range(self.path.depth):
            self.cs.add_constraint(
                [
                    self.nodes[level],
                    self.path.siblings[level],
                    self.path.index_bits[level],
                    self.left[level],
                    self.right[level],
                ],
                SELECT_CHILDREN,
                f"children at level {level}",
            )
            self.path.hash_function.enforce(
                self.cs, self.nodes[level + 1], [self.left[level], self.right[level]], f"parent at level {level}"
            )


class MerklePathCheck:
    """Gadget verifying that a leaf belongs to a Merkle tree with a given root.

    The gadget walks the authentication path exactly as `MerklePathRoot` does, and enforces that the computed root is
    equal to `root`. If it is not, the constraint system is not satisfiable.
    """

    def __init__(
        self,
        cs: ConstraintSystem,
        leaf: Variable,
        root: Variable | bytes,
        path: AuthenticationPath,
        prefix: str,
    ):
        """Initialise a MerklePathCheck gadget.

        Args:
            cs (ConstraintSystem): The constraint system.
            leaf (Variable): The leaf digest.
            root (Variable | bytes): The expected root, either a variable or a public constant.
            path (AuthenticationPath): The authentication path. It is referenced, not copied.
            prefix (str): Prefix of the names of the allocated variables.
        """
        self.cs = cs
        self.root = root
        self.path = path
        self.walk = MerklePathRoot(cs, leaf, path, prefix)

    def expected_root(self) -> bytes | None:
        """Return the value of the expected root, or None if it has not been assigned yet."""
        if not isinstance(self.root, Variable):
            return bytes(self.root)
        return self.cs.value(self.root) if self.cs.is_assigned(self.root) else None

    def generate_witness(self):
        """Compute the intermediate nodes, and log a warning if they do not hash up to the expected root."""
        self.walk.generate_witness()
        expected = self.expected_root()
        computed = self.cs.value(self.walk.result())
        if expected is not None and computed != expected:
            logger.warning(
                "Authentication path does not match the expected root: computed %s, expected %s",
                computed.hex(),
                expected.hex(),
            )

    def generate_constraints(self):
        """Add the constraints of the walk, and enforce that the computed root is the expected one."""
        self.walk.generate_constraints()
        self.cs.assert_equal(self.walk.result(), self.root, "computed root is the expected root")
