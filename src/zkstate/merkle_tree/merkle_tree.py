"""Sparse binary Merkle tree computed outside of the circuit."""

from dataclasses import dataclass

from zkstate.hash_functions.hash_function import HashFunction
from zkstate.util.utility_functions import index_to_bits


@dataclass(frozen=True)
class MerkleProof:
    """Authentication path of a leaf.

    Attributes:
        index (int): Position of the leaf in the tree.
        siblings (tuple[bytes, ...]): Sibling digests, from the leaf level up to the level below the root.
    """

    index: int
    siblings: tuple[bytes, ...]

    def bits(self) -> list[bool]:
        """Return the bits of `self.index`, least significant bit first. Bit `i` is True if the node at level `i` is a
        right child.
        """
        return index_to_bits(self.index, len(self.siblings))


class MerkleTree:
    """Binary Merkle tree of fixed depth where every leaf defaults to `empty_leaf`.

    Only the nodes which differ from the empty subtrees are stored, so that trees of large depth can be handled.
    """

    def __init__(self, depth: int, hash_function: HashFunction, empty_leaf: bytes | None = None):
        """Initialise a MerkleTree instance in which all the leaves are empty.

        Args:
            depth (int): Number of levels of the tree, the tree has `2**depth` leaves.
            hash_function (HashFunction): Hash function used to compute the parents.
            empty_leaf (bytes | None): Value of the unused leaves. Defaults to `digest_size` zero bytes.

        Raises:
            ValueError: If `depth` is not positive.
        """
        if depth <= 0:
            msg = "The depth of the tree must be positive: "
            msg += f"depth: {depth}"
            raise ValueError(msg)

        self.depth = depth
        self.hash_function = hash_function
        self.empty_leaf = empty_leaf if empty_leaf is not None else bytes(hash_function.digest_size)

        # empty_nodes[level] is the root of an empty subtree of depth `level`
        self.empty_nodes = [self.empty_leaf]
        for _ in range(depth):
            self.empty_nodes.append(hash_function.evaluate([self.empty_nodes[-1], self.empty_nodes[-1]]))

        self.__nodes: list[dict[int, bytes]] = [{} for _ in range(depth + 1)]

    @classmethod
    def from_leaves(
        cls, depth: int, hash_function: HashFunction, leaves: list[bytes], empty_leaf: bytes | None = None
    ) -> "MerkleTree":
        """Build a tree whose first leaves are `leaves`."""
        tree = cls(depth, hash_function, empty_leaf)
        for index, leaf in enumerate(leaves):
            tree.update(index, leaf)
        return tree

    def __check_index(self, index: int):
        if not 0 <= index < 2**self.depth:
            msg = "Leaf index out of range: "
            msg += f"index: {index}, depth: {self.depth}"
            raise IndexError(msg)

    def __node(self, level: int, index: int) -> bytes:
        return self.__nodes[level].get(index, self.empty_nodes[level])

    @property
    def root(self) -> bytes:
        """Root of the tree."""
        return self.__node(self.depth, 0)

    def leaf(self, index: int) -> bytes:
        """Return the leaf at position `index`."""
        self.__check_index(index)
        return self.__node(0, index)

    def update(self, index: int, leaf: bytes) -> bytes:
        """Set the leaf at position `index` to `leaf` and return the new root."""
        self.__check_index(index)

        node = leaf
        self.__nodes[0][index] = node
        for level in range(self.depth):
            sibling = self.__node(level, index ^ 1)
            left, right = (sibling, node) if index & 1 else (node, sibling)
            node = self.hash_function.evaluate([left, right])
            index >>= 1
            self.__nodes[level + 1][index] = node

        return self.root

    def authentication_path(self, index: int) -> MerkleProof:
        """Return the authentication path of the leaf at position `index`."""
        self.__check_index(index)

        siblings = []
        position = index
        for level in range(self.depth):
            siblings.append(self.__node(level, position ^ 1))
            position >>= 1

        return MerkleProof(index=index, siblings=tuple(siblings))

    def root_from_path(self, leaf: bytes, proof: MerkleProof) -> bytes:
        """Return the root of the tree obtained by placing `leaf` at the position of `proof`."""
        node = leaf
        for is_right, sibling in zip(proof.bits(), proof.siblings):
            left, right = (sibling, node) if is_right else (node, sibling)
            node = self.hash_function.evaluate([left, right])
        return node

    def verify(self, root: bytes, leaf: bytes, proof: MerkleProof) -> bool:
        """Return whether `proof` proves that `leaf` belongs to a tree with root `root`."""
        return len(proof.siblings) == self.depth and self.root_from_path(leaf, proof) == root
