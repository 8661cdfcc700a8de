"""Utility functions."""


def bits_to_index(bits: list[bool]) -> int:
    """Convert a list of bits, least significant bit first, into a leaf index.

    Example:
        >>> bits_to_index([True])
        1
        >>> bits_to_index([True, False])
        1
        >>> bits_to_index([False, True])
        2
        >>> bits_to_index([True, True])
        3
    """
    index = 0
    for level, bit in enumerate(bits):
        index |= 1 << level if bit else 0
    return index


def index_to_bits(index: int, depth: int) -> list[bool]:
    """Convert a leaf index into its `depth` bits, least significant bit first.

    Example:
        >>> index_to_bits(1, 2)
        [True, False]
        >>> index_to_bits(2, 2)
        [False, True]
        >>> index_to_bits(3, 3)
        [True, True, False]
    """
    if not 0 <= index < 2**depth:
        msg = "The index does not fit in the tree: "
        msg += f"index: {index}, depth: {depth}"
        raise ValueError(msg)

    out = []
    while index > 0:
        out.append(bool(index & 1))
        index = index >> 1
    return [*out, *[False] * (depth - len(out))]
