"""
NCN Vote
Aggregate BLS quorum vote verification over BN254.

A registered operator set signs a round counter with BLS shares on G1; the
aggregate signature is checked with one pairing, hardened against rogue
keys, and accepted only with a two-thirds quorum of stake-eligible signers.
"""

__version__ = "0.1.0"
__author__ = "NCN Vote"

from ncnvote.constants import MAX_OPERATORS, DEFAULT_HASH_SCHEME

__all__ = [
    "MAX_OPERATORS",
    "DEFAULT_HASH_SCHEME",
    "__version__",
]
