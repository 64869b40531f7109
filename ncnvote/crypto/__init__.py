"""
NCN Vote Cryptography

Hash-to-curve, rogue-key mixing and BLS signatures over BN254.
"""

from ncnvote.crypto.hash_to_curve import (
    HashToCurve,
    Sha256,
    Sha256Normalized,
    get_scheme,
    try_hash_to_curve,
)
from ncnvote.crypto.alpha import compute_alpha
from ncnvote.crypto.bls import (
    sign,
    aggregate_signatures,
    aggregate_g2_pubkeys,
    verify_signature,
    verify_aggregated_signature,
    verify_key_pair,
)

__all__ = [
    # Hash-to-curve
    "HashToCurve",
    "Sha256",
    "Sha256Normalized",
    "get_scheme",
    "try_hash_to_curve",
    # Mixing
    "compute_alpha",
    # BLS
    "sign",
    "aggregate_signatures",
    "aggregate_g2_pubkeys",
    "verify_signature",
    "verify_aggregated_signature",
    "verify_key_pair",
]
