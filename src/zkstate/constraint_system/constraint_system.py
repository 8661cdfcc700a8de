"""Constraint system compiled to Bitcoin Script."""

import logging
from dataclasses import dataclass

from tx_engine import Context, Script

from zkstate.util.utility_scripts import data_to_script, drop, pick, verify_size

logger = logging.getLogger(__name__)

TRUE = b"\x01"
FALSE = b""


@dataclass(frozen=True)
class Variable:
    """Variable of a constraint system.

    Attributes:
        index (int): Allocation index of the variable. The variable is the `index`-th element pushed by the unlocking
            script.
        name (str): Human readable name of the variable, used in error messages.
    """

    index: int
    name: str


@dataclass(frozen=True)
class Constraint:
    """Constraint of a constraint system.

    Attributes:
        inputs (tuple[Variable, ...]): Variables copied on top of the stack, in order, before `script` is executed.
        script (Script): Script consuming the copies of `inputs` and failing if the relation does not hold.
        annotation (str): Description of the constraint.
    """

    inputs: tuple[Variable, ...]
    script: Script
    annotation: str


class ConstraintSystem:
    """Context owning the variables, the witness and the constraints of a circuit.

    Variables are witness elements: the unlocking script pushes their values in allocation order. Constraints are
    fragments of the locking script: each of them copies the variables it involves on top of the stack and verifies a
    relation between them, leaving the stack as it found it. Hence, the circuit is satisfied by a witness if and only
    if `unlocking_script() + locking_script()` evaluates successfully.

    Stack positions are only resolved in `locking_script`, so constraints can be added before every variable of the
    circuit has been allocated.
    """

    def __init__(self):
        """Initialise an empty constraint system."""
        self.variables: list[Variable] = []
        self.constraints: list[Constraint] = []
        self.__values: dict[int, bytes] = {}

    @property
    def num_variables(self) -> int:
        """Number of allocated variables."""
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        """Number of constraints."""
        return len(self.constraints)

    def allocate_variable(self, name: str) -> Variable:
        """Allocate a new variable called `name`."""
        variable = Variable(index=len(self.variables), name=name)
        self.variables.append(variable)
        return variable

    def allocate_variable_array(self, n: int, name: str) -> list[Variable]:
        """Allocate `n` new variables called `name[0]`, ..., `name[n-1]`."""
        if n < 0:
            msg = "The number of variables must be non-negative: "
            msg += f"n: {n}"
            raise ValueError(msg)
        return [self.allocate_variable(f"{name}[{i}]") for i in range(n)]

    def __check_variable(self, variable: Variable):
        if variable.index >= len(self.variables) or self.variables[variable.index] is not variable:
            msg = "The variable does not belong to this constraint system: "
            msg += f"variable: {variable}"
            raise ValueError(msg)

    def assign(self, variable: Variable, value: bytes | bool):
        """Assign `value` to `variable`.

        Args:
            variable (Variable): The variable to assign.
            value (bytes | bool): The value. Booleans are encoded as `0x01` (True) and the empty string (False).
        """
        self.__check_variable(variable)
        if isinstance(value, bool):
            value = TRUE if value else FALSE
        if not isinstance(value, (bytes, bytearray)):
            msg = "Values must be bytes or booleans: "
            msg += f"variable: {variable.name}, value: {value!r}"
            raise TypeError(msg)
        self.__values[variable.index] = bytes(value)

    def assign_array(self, variables: list[Variable], values: list[bytes | bool]):
        """Assign `values[i]` to `variables[i]`."""
        if len(variables) != len(values):
            msg = "The number of values does not match the number of variables: "
            msg += f"len(variables): {len(variables)}, len(values): {len(values)}"
            raise ValueError(msg)
        for variable, value in zip(variables, values):
            self.assign(variable, value)

    def is_assigned(self, variable: Variable) -> bool:
        """Return whether a value has been assigned to `variable`."""
        return variable.index in self.__values

    def value(self, variable: Variable) -> bytes:
        """Return the value assigned to `variable`.

        Raises:
            ValueError: If no value has been assigned to `variable`.
        """
        self.__check_variable(variable)
        if variable.index not in self.__values:
            msg = "The variable has not been assigned: "
            msg += f"variable: {variable.name}"
            raise ValueError(msg)
        return self.__values[variable.index]

    def add_constraint(self, inputs: list[Variable], script: Script, annotation: str = ""):
        """Add a constraint over `inputs`.

        Stack input:
            - stack:    [..., inputs[0], ..., inputs[-1]]
            - altstack: []

        Stack output:
            - stack:    [...] if the constraint holds, else failure
            - altstack: []

        Args:
            inputs (list[Variable]): The variables involved in the constraint.
            script (Script): The script verifying the constraint.
            annotation (str): Description of the constraint.
        """
        for variable in inputs:
            self.__check_variable(variable)
        self.constraints.append(Constraint(inputs=tuple(inputs), script=script, annotation=annotation))

    def assert_equal(self, a: Variable, b: Variable | bytes, annotation: str = ""):
        """Constrain `a` to be equal to `b`.

        Args:
            a (Variable): A variable.
            b (Variable | bytes): Either a variable or a public constant, which is hard-coded in the locking script.
            annotation (str): Description of the constraint.
        """
        if isinstance(b, Variable):
            self.add_constraint([a, b], Script.parse_string("OP_EQUALVERIFY"), annotation)
        else:
            self.add_constraint([a], data_to_script(bytes(b)) + Script.parse_string("OP_EQUALVERIFY"), annotation)

    def enforce_boolean(self, variable: Variable, annotation: str = ""):
        """Constrain `variable` to be a minimally encoded boolean, i.e., either the empty string or `0x01`."""
        self.add_constraint([variable], Script.parse_string("OP_DUP OP_0NOTEQUAL OP_EQUALVERIFY"), annotation)

    def enforce_size(self, variable: Variable, size: int, annotation: str = ""):
        """Constrain `variable` to be `size` bytes long."""
        self.add_constraint([variable], verify_size(size), annotation)

    def locking_script(self) -> Script:
        """Compile the constraints to a locking script.

        Stack input:
            - stack:    [value(variables[0]), ..., value(variables[-1])]
            - altstack: []

        Stack output:
            - stack:    [1] if all the constraints hold, else failure
            - altstack: []

        Returns:
            The locking script verifying all the constraints, in the order in which they were added.
        """
        n = len(self.variables)
        out = Script()
        for constraint in self.constraints:
            # The j-th copy is taken after j elements have been pushed on top of the variables
            for j, variable in enumerate(constraint.inputs):
                out += pick(n - 1 - variable.index + j)
            out += constraint.script
        out += drop(n)
        out += Script.parse_string("OP_1")

        logger.debug("Compiled %d constraints over %d variables", len(self.constraints), n)
        return out

    def unlocking_script(self) -> Script:
        """Return the unlocking script pushing the witness.

        Raises:
            ValueError: If some variables have not been assigned.
        """
        missing = [variable.name for variable in self.variables if variable.index not in self.__values]
        if missing:
            msg = "Some variables have not been assigned: "
            msg += f"{', '.join(missing)}"
            raise ValueError(msg)

        out = Script()
        for variable in self.variables:
            out += data_to_script(self.__values[variable.index])
        return out

    def is_satisfied(self) -> bool:
        """Return whether the witness satisfies all the constraints."""
        context = Context(script=self.unlocking_script() + self.locking_script())
        return context.evaluate(quiet=True)
