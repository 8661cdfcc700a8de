"""Utility functions to construct script."""

from tx_engine import Script, encode_num
from tx_engine.engine.op_codes import (
    OP_0,
    OP_1,
    OP_1NEGATE,
    OP_2,
    OP_2DROP,
    OP_3,
    OP_4,
    OP_5,
    OP_6,
    OP_7,
    OP_8,
    OP_9,
    OP_10,
    OP_11,
    OP_12,
    OP_13,
    OP_14,
    OP_15,
    OP_16,
    OP_DROP,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_OVER,
    OP_PICK,
    OP_SIZE,
)

op_range = range(-1, 17)
op_range_to_opcode = {
    -1: OP_1NEGATE,
    0: OP_0,
    1: OP_1,
    2: OP_2,
    3: OP_3,
    4: OP_4,
    5: OP_5,
    6: OP_6,
    7: OP_7,
    8: OP_8,
    9: OP_9,
    10: OP_10,
    11: OP_11,
    12: OP_12,
    13: OP_13,
    14: OP_14,
    15: OP_15,
    16: OP_16,
}


def pick(position: int) -> Script:
    """Copy the element at `position` to the top of the stack.

    Args:
        position (int): The stack position of the element to pick, counting from 0 at the top of the stack.

    Returns:
        Script to pick the element at `position`.

    Example:
        >>> pick(0)
        OP_DUP
        >>> pick(1)
        OP_OVER
        >>> pick(8)
        OP_8 OP_PICK
        >>> pick(17)
        0x11 OP_PICK
    """
    if position < 0:
        msg = "The position must be non-negative: "
        msg += f"position: {position}"
        raise ValueError(msg)

    if position == 0:
        return Script([OP_DUP])
    if position == 1:
        return Script([OP_OVER])
    if position in op_range:
        return Script([op_range_to_opcode[position], OP_PICK])

    out = Script()
    out.append_pushdata(encode_num(position))
    out += Script([OP_PICK])
    return out


def drop(n_elements: int) -> Script:
    """Drop the top `n_elements` elements of the stack.

    Example:
        >>> drop(5)
        OP_2DROP OP_2DROP OP_DROP
    """
    if n_elements < 0:
        msg = "The number of elements to drop must be non-negative: "
        msg += f"n_elements: {n_elements}"
        raise ValueError(msg)

    return Script([OP_2DROP] * (n_elements // 2) + [OP_DROP] * (n_elements % 2))


def nums_to_script(nums: list[int]) -> Script:
    """Push a list of numbers to the stack.

    Args:
        nums (list[int]): List of numbers to push to the stack.

    Returns:
        Script containing the numbers to push.

    Example:
        >>> nums_to_script([-1, 0, 1, 16, 17, 32])
        OP_1NEGATE OP_0 OP_1 OP_16 0x11 0x20
    """
    out = Script()
    for n in nums:
        if n in op_range:
            out += Script([op_range_to_opcode[n]])
        else:
            out.append_pushdata(encode_num(n))

    return out


def data_to_script(data: bytes) -> Script:
    """Push a byte string to the stack with the minimal push operation.

    Example:
        >>> data_to_script(b"")
        OP_0
        >>> data_to_script(b"\\x01")
        OP_1
        >>> data_to_script(b"\\x81")
        OP_1NEGATE
        >>> data_to_script(b"\\x11")
        0x11
    """
    if data == b"":
        return Script([OP_0])
    if len(data) == 1 and 1 <= data[0] <= 16:
        return Script([op_range_to_opcode[data[0]]])
    if data == b"\x81":
        return Script([OP_1NEGATE])

    out = Script()
    out.append_pushdata(data)
    return out


def verify_size(size: int) -> Script:
    """Verify that the element on top of the stack is `size` bytes long, and drop it.

    Stack input:
        - stack:    [..., x]
        - altstack: []

    Stack output:
        - stack:    [...] if len(x) == size, else failure
        - altstack: []
    """
    return Script([OP_SIZE]) + nums_to_script([size]) + Script([OP_EQUALVERIFY, OP_DROP])
