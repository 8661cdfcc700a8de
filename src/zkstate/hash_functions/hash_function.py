"""Hash gadget built on Bitcoin Script hash opcodes."""

import hashlib

from tx_engine import Script, hash160, hash256d

from zkstate.constraint_system.constraint_system import ConstraintSystem, Variable


def _ripemd160(data: bytes) -> bytes:
    return hashlib.new("ripemd160", data).digest()


def _sha1(data: bytes) -> bytes:
    return hashlib.sha1(data).digest()  # noqa: S324


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


HASH_OPCODES = {
    "OP_RIPEMD160": (_ripemd160, 20),
    "OP_SHA1": (_sha1, 20),
    "OP_SHA256": (_sha256, 32),
    "OP_HASH160": (hash160, 20),
    "OP_HASH256": (hash256d, 32),
}


class HashFunction:
    """Hash function given by a sequence of Bitcoin Script hash opcodes.

    The hash of a sequence of inputs `(x_0, ..., x_{k-1})` is the hash of their concatenation `x_0 || ... || x_{k-1}`.
    The opcodes are applied left to right, e.g., `OP_HASH160 OP_HASH256` computes `hash256(hash160(x))`.
    """

    def __init__(self, opcodes: str = "OP_SHA256"):
        """Initialise a HashFunction instance.

        Args:
            opcodes (str): A valid hash opcode or a space-separated sequence of valid hash opcodes. Valid hash opcodes
                are `OP_RIPEMD160, OP_SHA1, OP_SHA256, OP_HASH160, OP_HASH256`.

        Raises:
            ValueError: If `opcodes` is empty or contains invalid opcodes.
        """
        names = opcodes.split()
        if not names or not set(names).issubset(HASH_OPCODES):
            msg = "Not a valid hash function: "
            msg += f"opcodes: {opcodes}"
            raise ValueError(msg)

        self.opcodes = " ".join(names)
        self.digest_size = HASH_OPCODES[names[-1]][1]

    def __repr__(self) -> str:
        return f"HashFunction({self.opcodes!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, HashFunction) and self.opcodes == other.opcodes

    def __hash__(self) -> int:
        return hash(self.opcodes)

    def evaluate(self, inputs: list[bytes]) -> bytes:
        """Compute the hash of the concatenation of `inputs` outside of the circuit.

        Raises:
            ValueError: If `inputs` is empty.
        """
        if len(inputs) == 0:
            msg = "The hash function requires at least one input."
            raise ValueError(msg)

        out = b"".join(inputs)
        for name in self.opcodes.split():
            out = HASH_OPCODES[name][0](out)
        return out

    def to_script(self) -> Script:
        """Return the script computing the hash of the element on top of the stack."""
        return Script.parse_string(self.opcodes)

    def enforce(self, cs: ConstraintSystem, output: Variable, inputs: list[Variable], annotation: str = ""):
        """Constrain `output` to be the hash of the concatenation of `inputs`.

        Stack input:
            - stack:    [..., inputs[0], ..., inputs[k-1], output]
            - altstack: []

        Stack output:
            - stack:    [...] if output == hash(inputs[0] || ... || inputs[k-1]), else failure
            - altstack: []

        Raises:
            ValueError: If `inputs` is empty.
        """
        if len(inputs) == 0:
            msg = "The hash function requires at least one input: "
            msg += f"output: {output.name}"
            raise ValueError(msg)

        out = Script.parse_string("OP_TOALTSTACK")
        if len(inputs) > 1:
            out += Script.parse_string(" ".join(["OP_CAT"] * (len(inputs) - 1)))
        out += self.to_script()
        out += Script.parse_string("OP_FROMALTSTACK OP_EQUALVERIFY")

        cs.add_constraint([*inputs, output], out, annotation)
