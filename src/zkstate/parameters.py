"""Parameters of the state trees."""

TREE_DEPTH_ACCOUNTS = 20
TREE_DEPTH_TOKENS = 10

DEFAULT_HASH_FUNCTION = "OP_SHA256"

# Byte widths of the record fields which are not digests
PUBLIC_KEY_COORDINATE_BYTES = 32
NONCE_BYTES = 4
BALANCE_BYTES = 12
