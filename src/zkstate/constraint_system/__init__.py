"""Constraint system package.

The `ConstraintSystem` class is the context shared by all the gadgets of a circuit. It allocates variables, stores
their values (the witness) and collects constraints. It compiles to a pair of scripts:

- `unlocking_script`, pushing the values of the variables in allocation order;
- `locking_script`, verifying each constraint on copies of its variables, then cleaning the stack.

A witness satisfies the circuit if and only if `unlocking_script() + locking_script()` evaluates successfully, which
is checked by `is_satisfied`.
"""
