"""State package.

Records (`Account`, `Balance`) are stored in the leaves of state trees, the leaf of a record being the hash of the
concatenation of its fields. `StateUpdateGadget` proves the update of one leaf and computes the new root of the tree.
"""
