"""Merkle tree package.

Outside of the circuit, `MerkleTree` is a sparse binary Merkle tree producing roots and authentication paths
(`MerkleProof`). Inside the circuit, the gadgets of `merkle_path` work on an `AuthenticationPath`, made of the sibling
digests and of the bits of the position of the leaf:

- `MerklePathCheck` verifies that a leaf belongs to a tree with a given root
- `MerklePathRoot` computes the root of the tree from a leaf

At each level `i`, the parent is `hash(node_i || sibling_i)` if `bit_i == 0`, and `hash(sibling_i || node_i)`
otherwise.
"""
