"""
NCN Vote Constants

All protocol constants defined here for single source of truth.
"""

from typing import Final

# ==============================================================================
# ENCODING SIZES
# ==============================================================================

FIELD_ELEMENT_SIZE: Final[int] = 32             # Big-endian Fp element
SCALAR_SIZE: Final[int] = 32                    # Big-endian scalar mod r
G1_POINT_SIZE: Final[int] = 64                  # x || y
G1_COMPRESSED_POINT_SIZE: Final[int] = 32       # x with flag bits
G2_POINT_SIZE: Final[int] = 128                 # x.c1 || x.c0 || y.c1 || y.c0
G2_COMPRESSED_POINT_SIZE: Final[int] = 64       # x.c1 || x.c0 with flag bits
MESSAGE_SIZE: Final[int] = 32                   # Signed round message

ALT_BN128_ADDITION_INPUT_SIZE: Final[int] = 128
ALT_BN128_MULTIPLICATION_INPUT_SIZE: Final[int] = 96
ALT_BN128_PAIRING_ELEMENT_SIZE: Final[int] = 192

# Compression flags, top bits of the first big-endian byte
COMPRESSION_FLAG_NEGATIVE_Y: Final[int] = 0x80
COMPRESSION_FLAG_INFINITY: Final[int] = 0x40
COMPRESSION_FLAG_MASK: Final[int] = 0xC0

# Canonical pairing results
PAIRING_SUCCESS: Final[bytes] = bytes(31) + b"\x01"
PAIRING_FAILURE: Final[bytes] = bytes(32)

# ==============================================================================
# HASH-TO-CURVE
# ==============================================================================

HASH_TO_CURVE_MAX_ATTEMPTS: Final[int] = 255    # Counter byte runs 0..254
NORMALIZE_MODULUS_MULTIPLIER: Final[int] = 5    # Largest k with k*p < 2^256

HASH_SCHEME_SHA256: Final[str] = "sha256"
HASH_SCHEME_SHA256_NORMALIZED: Final[str] = "sha256-normalized"
DEFAULT_HASH_SCHEME: Final[str] = HASH_SCHEME_SHA256_NORMALIZED

# ==============================================================================
# CONSENSUS
# ==============================================================================

MAX_OPERATORS: Final[int] = 256                 # Registry capacity per snapshot
QUORUM_DENOMINATOR: Final[int] = 3              # Up to n // 3 may abstain
MAX_ROUND_COUNTER: Final[int] = 2**64 - 1       # u64 counter ceiling
MIN_ELIGIBLE_STAKE: Final[int] = 1              # Zero stake never votes

# ==============================================================================
# STORAGE
# ==============================================================================

SCHEMA_VERSION: Final[int] = 1
DEFAULT_DB_NAME: Final[str] = "ncn_votes.db"
