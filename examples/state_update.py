import argparse
import json
import logging
from pathlib import Path

import tomllib
from tx_engine import Context, Script

from zkstate.constraint_system.constraint_system import ConstraintSystem
from zkstate.hash_functions.hash_function import HashFunction
from zkstate.merkle_tree.merkle_tree import MerkleTree
from zkstate.parameters import DEFAULT_HASH_FUNCTION
from zkstate.state.records import ACCOUNT, BALANCE, RecordGadget, RecordShape
from zkstate.state.state_update import StateUpdateGadget
from zkstate.util.utility_functions import index_to_bits

logger = logging.getLogger(__name__)

SHAPES = {"account": ACCOUNT, "balance": BALANCE}


def record_from_config(shape: RecordShape, hash_function: HashFunction, entry: dict, default=None):
    """Build a record of `shape` from a TOML table. Digests are hex strings, every other field is an integer.

    Fields missing from `entry` are taken from `default`, or are zero if `default` is None.
    """
    default = default if default is not None else shape.empty_record(hash_function)
    values = {}
    for name, size in zip(shape.field_names, shape.field_sizes):
        if name not in entry:
            values[name] = getattr(default, name)
        elif size is None:
            values[name] = bytes.fromhex(entry[name])
        else:
            values[name] = int(entry[name])
    return shape.record_type(**values)


def build_batch(config: dict) -> tuple[Script, Script, bytes, bytes]:
    """Build the circuit proving the sequence of updates in `config`.

    Returns:
        The locking script, the unlocking script, the initial root and the final root. Both roots are public: they
        are hard-coded in the locking script.
    """
    shape = SHAPES[config["record"]]
    if "tree_depth" in config:
        shape = shape.with_overrides(tree_depth=config["tree_depth"])
    hash_function = HashFunction(config.get("hash_function", DEFAULT_HASH_FUNCTION))

    tree = MerkleTree(shape.tree_depth, hash_function, shape.empty_leaf(hash_function))
    records = {}
    for entry in config.get("leaves", []):
        records[entry["index"]] = record_from_config(shape, hash_function, entry)
        tree.update(entry["index"], shape.leaf(records[entry["index"]], hash_function))
    initial_root = tree.root

    cs = ConstraintSystem()
    root = initial_root
    for n, entry in enumerate(config["updates"]):
        index = entry["index"]
        before = records.get(index, shape.empty_record(hash_function))
        after = record_from_config(shape, hash_function, entry, before)

        index_bits = cs.allocate_variable_array(shape.tree_depth, f"update_{n}.index")
        record_before = RecordGadget(cs, shape, hash_function, f"update_{n}.before")
        record_after = RecordGadget(cs, shape, hash_function, f"update_{n}.after")
        update = StateUpdateGadget(
            cs, root, index_bits, record_before.state(), record_after.state(), hash_function, f"update_{n}"
        )
        update.generate_constraints()

        cs.assign_array(index_bits, index_to_bits(index, shape.tree_depth))
        record_before.generate_witness(before)
        record_after.generate_witness(after)
        update.generate_witness(tree.authentication_path(index))

        records[index] = after
        tree.update(index, shape.leaf(after, hash_function))
        root = update.result()
        logger.info("Update %d: %s at index %d, new root %s", n, shape.name, index, tree.root.hex())

    final_root = tree.root
    cs.assert_equal(root, final_root, "final root")

    return cs.locking_script(), cs.unlocking_script(), initial_root, final_root


def save_data_to_file(data: list[str], key: list[str], filename: str):
    data_dir = Path(__file__).resolve().parent / "outputs"
    data_dir.mkdir(parents=True, exist_ok=True)
    data_to_write = []
    for k, d in zip(key, data):
        data_to_write.append({k: d})
    with Path.open(data_dir / f"{filename}.json", "w") as f:
        f.write(json.dumps(data_to_write))


parser = argparse.ArgumentParser(
    description="Given a state tree and a sequence of updates of its leaves, generate the locking and unlocking \
        scripts proving that the tree moves from its initial root to its final root through these updates"
)
parser.add_argument("--config", type=str, help="TOML file describing the tree and the updates", required=True)
parser.add_argument("--verbose", action="store_true", help="Log every update")

if __name__ == "__main__":
    args = parser.parse_args()
    config_path = Path(args.config)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    with Path.open(config_path, "rb") as f:
        config = tomllib.load(f)

    lock, unlock, initial_root, final_root = build_batch(config)

    context = Context(script=unlock + lock)
    assert context.evaluate(), "Evaluation using Context failed"

    save_data_to_file(
        [lock.to_string(), lock.serialize().hex(), initial_root.hex(), final_root.hex()],
        ["locking_script", "locking_script_hex", "initial_root", "final_root"],
        f"locking_script_{config_path.stem}",
    )
    save_data_to_file(
        [unlock.to_string(), unlock.serialize().hex()],
        ["unlocking_script", "unlocking_script_hex"],
        f"unlocking_script_{config_path.stem}",
    )
