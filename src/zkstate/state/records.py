"""Records stored in the leaves of the state trees."""

from dataclasses import dataclass, fields, replace
from typing import Self

from zkstate.constraint_system.constraint_system import ConstraintSystem, Variable
from zkstate.hash_functions.hash_function import HashFunction
from zkstate.parameters import (
    BALANCE_BYTES,
    NONCE_BYTES,
    PUBLIC_KEY_COORDINATE_BYTES,
    TREE_DEPTH_ACCOUNTS,
    TREE_DEPTH_TOKENS,
)


@dataclass(frozen=True)
class Account:
    """Account leaf of the accounts tree."""

    public_key_x: int
    public_key_y: int
    nonce: int
    balances_root: bytes


@dataclass(frozen=True)
class Balance:
    """Balance leaf of the balances tree of an account."""

    balance: int
    trading_history_root: bytes


def encode_field(value: int | bytes, size: int) -> bytes:
    """Encode `value` on `size` bytes. Integers are encoded in big-endian, bytes must already be `size` bytes long.

    Raises:
        ValueError: If `value` does not fit in `size` bytes.
    """
    if isinstance(value, int):
        if value < 0 or value.bit_length() > 8 * size:
            msg = "The value does not fit in the field: "
            msg += f"value: {value}, size: {size}"
            raise ValueError(msg)
        return value.to_bytes(size, byteorder="big")

    if len(value) != size:
        msg = "The value does not have the size of the field: "
        msg += f"len(value): {len(value)}, size: {size}"
        raise ValueError(msg)
    return bytes(value)


@dataclass(frozen=True)
class RecordShape:
    """Shape of the records stored in a state tree.

    Attributes:
        name (str): Name of the record type.
        record_type (type): Dataclass of the records, whose fields are listed in the order in which they are hashed.
        field_sizes (tuple[int | None, ...]): Byte size of each field. `None` denotes a digest of the hash function of
            the tree.
        tree_depth (int): Depth of the tree storing the records.
    """

    name: str
    record_type: type
    field_sizes: tuple[int | None, ...]
    tree_depth: int

    def __post_init__(self):
        if len(self.field_sizes) != len(fields(self.record_type)):
            msg = "There must be one size per field: "
            msg += f"record_type: {self.record_type.__name__}, field_sizes: {self.field_sizes}"
            raise ValueError(msg)

    @property
    def field_names(self) -> tuple[str, ...]:
        """Names of the fields, in the order in which they are hashed."""
        return tuple(field.name for field in fields(self.record_type))

    @property
    def arity(self) -> int:
        """Number of fields."""
        return len(self.field_sizes)

    def with_overrides(self, **overrides) -> Self:
        """Return a copy of self with the attributes in `overrides` replaced, e.g., `tree_depth`."""
        return replace(self, **overrides)

    def sizes(self, hash_function: HashFunction) -> list[int]:
        """Return the byte size of each field for records hashed with `hash_function`."""
        return [hash_function.digest_size if size is None else size for size in self.field_sizes]

    def encode(self, record, hash_function: HashFunction) -> list[bytes]:
        """Return the encoding of the fields of `record`."""
        if not isinstance(record, self.record_type):
            msg = "The record does not have the shape: "
            msg += f"shape: {self.name}, record: {record!r}"
            raise ValueError(msg)
        return [
            encode_field(getattr(record, name), size)
            for name, size in zip(self.field_names, self.sizes(hash_function))
        ]

    def empty_record(self, hash_function: HashFunction):
        """Return the record of an unused leaf: every field is zero."""
        return self.record_type(
            **{
                name: 0 if size is not None else bytes(hash_function.digest_size)
                for name, size in zip(self.field_names, self.field_sizes)
            }
        )

    def leaf(self, record, hash_function: HashFunction) -> bytes:
        """Return the leaf digest of `record`, computed outside of the circuit."""
        return hash_function.evaluate(self.encode(record, hash_function))

    def empty_leaf(self, hash_function: HashFunction) -> bytes:
        """Return the leaf digest of an unused leaf."""
        return self.leaf(self.empty_record(hash_function), hash_function)


ACCOUNT = RecordShape(
    name="account",
    record_type=Account,
    field_sizes=(PUBLIC_KEY_COORDINATE_BYTES, PUBLIC_KEY_COORDINATE_BYTES, NONCE_BYTES, None),
    tree_depth=TREE_DEPTH_ACCOUNTS,
)

BALANCE = RecordShape(
    name="balance",
    record_type=Balance,
    field_sizes=(BALANCE_BYTES, None),
    tree_depth=TREE_DEPTH_TOKENS,
)


@dataclass(frozen=True)
class RecordState:
    """Variables holding the fields of a record, in the order in which they are hashed."""

    shape: RecordShape
    fields: tuple[Variable, ...]


class RecordGadget:
    """Gadget allocating the variables of a record and filling them from an `Account` or a `Balance`.

    `StateUpdateGadget` constrains the sizes of the fields of the records it updates. `generate_constraints` is needed
    only when the record is used on its own.
    """

    def __init__(self, cs: ConstraintSystem, shape: RecordShape, hash_function: HashFunction, prefix: str):
        """Initialise a RecordGadget, allocating one variable `prefix.field_name` per field of `shape`.

        Args:
            cs (ConstraintSystem): The constraint system.
            shape (RecordShape): The shape of the record.
            hash_function (HashFunction): Hash function of the tree, which gives the size of the digest fields.
            prefix (str): Prefix of the names of the allocated variables.
        """
        self.cs = cs
        self.shape = shape
        self.hash_function = hash_function
        self.fields = tuple(cs.allocate_variable(f"{prefix}.{name}") for name in shape.field_names)

    def state(self) -> RecordState:
        """Return the variables of the record, to be passed to `StateUpdateGadget`."""
        return RecordState(shape=self.shape, fields=self.fields)

    def generate_witness(self, record):
        """Assign the encoded fields of `record`.

        Args:
            record (Account | Balance): The off-circuit record, of the type of the shape.

        Raises:
            ValueError: If `record` does not have the shape, or if a field does not fit in its size.
        """
        self.cs.assign_array(list(self.fields), self.shape.encode(record, self.hash_function))

    def generate_constraints(self):
        """Constrain every field to have the size prescribed by the shape."""
        for name, variable, size in zip(self.shape.field_names, self.fields, self.shape.sizes(self.hash_function)):
            self.cs.enforce_size(variable, size, f"{self.shape.name}.{name} has {size} bytes")
