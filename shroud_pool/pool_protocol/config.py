"""
⚠️ DRAFT: requires crypto review before production use

Protocol parameters for the shielded pool.

These values are shared with the off-chain withdrawal circuit. Changing any
of them invalidates every deposit note and verifying key already issued.
"""

# ============================================================================
# FIELD SELECTION
# ============================================================================

# BN254 (alt_bn128) scalar field: the native arithmetic of the Groth16
# withdrawal circuit. Commitments, roots and nullifier hashes live here.
CURVE_NAME = "bn254"
FIELD_MODULUS = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)
FIELD_ELEMENT_BYTES = 32

# Base field of the curve (point coordinates)
BASE_FIELD_MODULUS = (
    21888242871839275222246405745257275088696311157297823662689037894645226208583
)

# ============================================================================
# MERKLE TREE
# ============================================================================

TREE_LEVELS = 20
MAX_LEAVES = 2**TREE_LEVELS
ROOT_HISTORY_SIZE = 30

# Every empty subtree hashes to this value at every level
ZERO_VALUE = 0

# ============================================================================
# PAIR HASH (MiMC7, circomlib-compatible)
# ============================================================================

HASH_FUNCTION = "MiMC7"
MIMC_SEED = "mimc"
MIMC_ROUNDS = 91
MIMC_EXPONENT = 7

# ============================================================================
# VALUE MOVEMENT
# ============================================================================

# 100 CSPR, in motes
DENOMINATION = 100_000_000_000
AMOUNT_BITS = 512
RECIPIENT_BYTES = 32

# ============================================================================
# PROOF SERIALIZATION
# ============================================================================

# Compressed Groth16 proof: A (G1) || B (G2) || C (G1)
G1_COMPRESSED_BYTES = 32
G2_COMPRESSED_BYTES = 64
PROOF_SIZE_BYTES = 2 * G1_COMPRESSED_BYTES + G2_COMPRESSED_BYTES

# [root, nullifier_hash, recipient]
PUBLIC_INPUT_COUNT = 3

# ============================================================================
# STATE SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
STATE_FORMAT_VERSION = 1

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert 0 < TREE_LEVELS <= 32, "Tree depth out of range for a u32 leaf index"
    assert ROOT_HISTORY_SIZE >= 1, "Root history must retain at least one root"
    assert ZERO_VALUE == 0, "Empty subtrees must hash to zero"
    assert FIELD_MODULUS < 2 ** (8 * FIELD_ELEMENT_BYTES), "Field does not fit encoding"
    assert MIMC_ROUNDS == 91, "circomlib MiMC7 uses 91 rounds"
    assert MIMC_EXPONENT == 7, "MiMC7 exponent must be 7"
    assert 0 < DENOMINATION < 2**AMOUNT_BITS, "Denomination out of range"
    assert PROOF_SIZE_BYTES == 128, "Compressed BN254 Groth16 proofs are 128 bytes"
    assert SERIALIZATION_FORMAT == "CBOR", "Invalid serialization format"

    return True


# Auto-validate on import
validate_config()
