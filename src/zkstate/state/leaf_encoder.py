"""Gadget hashing the fields of a record into a leaf."""

from zkstate.constraint_system.constraint_system import ConstraintSystem, Variable
from zkstate.hash_functions.hash_function import HashFunction


class LeafEncoder:
    """Gadget binding a digest variable to the hash of the concatenation of the fields of a record.

    The field variables are owned by the caller, the gadget only allocates the digest.
    """

    def __init__(self, cs: ConstraintSystem, fields: list[Variable], hash_function: HashFunction, prefix: str):
        """Initialise a LeafEncoder, allocating the digest variable `prefix.digest`.

        Args:
            cs (ConstraintSystem): The constraint system.
            fields (list[Variable]): The fields of the record, in the order in which they are hashed.
            hash_function (HashFunction): Hash function of the tree.
            prefix (str): Prefix of the name of the digest variable.

        Raises:
            ValueError: If `fields` is empty.
        """
        if len(fields) == 0:
            msg = "A leaf must have at least one field: "
            msg += f"prefix: {prefix}"
            raise ValueError(msg)

        self.cs = cs
        self.fields = tuple(fields)
        self.hash_function = hash_function
        self.digest = cs.allocate_variable(f"{prefix}.digest")

    def result(self) -> Variable:
        """Return the variable holding the leaf digest."""
        return self.digest

    def generate_witness(self):
        """Assign the digest of the assigned field values.

        Raises:
            ValueError: If some fields have not been assigned.
        """
        self.cs.assign(self.digest, self.hash_function.evaluate([self.cs.value(field) for field in self.fields]))

    def generate_constraints(self):
        """Constrain the digest to be the hash of the concatenation of the fields."""
        self.hash_function.enforce(self.cs, self.digest, list(self.fields), f"{self.digest.name} is the leaf hash")
