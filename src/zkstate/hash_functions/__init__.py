"""Hash functions package.

The `HashFunction` class wraps a sequence of Bitcoin Script hash opcodes. It evaluates the hash outside of the circuit
and enforces `output = hash(inputs[0] || ... || inputs[k-1])` inside the circuit.
"""
