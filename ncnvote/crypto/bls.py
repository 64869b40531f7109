"""
NCN Vote BLS Signatures

Signatures live in G1, public keys used for verification in G2. Every check
reduces to one alt_bn128 pairing call over two (G1, G2) pairs against the
negated G2 generator.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional, Union

from ncnvote.constants import PAIRING_SUCCESS
from ncnvote.core.bn254 import AltBN128Error, alt_bn128_pairing
from ncnvote.core.types import G1Point, G2Point, PrivKey
from ncnvote.crypto.alpha import compute_alpha
from ncnvote.crypto.hash_to_curve import HashToCurve, try_hash_to_curve
from ncnvote.errors import (
    CurveArithmeticError,
    InvalidParameterError,
    PairingError,
    SignatureVerificationError,
)

logger = logging.getLogger(__name__)

G2_MINUS_ONE: G2Point = G2Point.negated_generator()


def _require_nonzero(*points: Union[G1Point, G2Point]) -> None:
    for point in points:
        if point.is_zero():
            raise CurveArithmeticError("pairing", f"zero operand {point!r}")


def _pairing_check(pairing_input: bytes) -> bool:
    try:
        result = alt_bn128_pairing(pairing_input)
    except AltBN128Error as e:
        raise PairingError(str(e)) from e
    return result == PAIRING_SUCCESS


# ==============================================================================
# SIGNING
# ==============================================================================

def sign(
    privkey: PrivKey,
    message: Union[bytes, bytearray],
    scheme: Optional[HashToCurve] = None,
) -> G1Point:
    """
    Sign a message: sigma = sk * H(m).

    Args:
        privkey: Operator private scalar
        message: Message bytes
        scheme: Hash-to-curve scheme (default: normalized SHA-256)

    Returns:
        G1Point: 64-byte uncompressed signature
    """
    return try_hash_to_curve(message, scheme).mul(privkey.data)


def aggregate_signatures(signatures: Iterable[G1Point]) -> G1Point:
    """Sum signature shares; the first share seeds the accumulator."""
    aggregate = None
    for signature in signatures:
        aggregate = signature if aggregate is None else aggregate.add(signature)
    if aggregate is None:
        raise InvalidParameterError("signatures", "nothing to aggregate")
    return aggregate


def aggregate_g2_pubkeys(pubkeys: Iterable[G2Point]) -> G2Point:
    """Sum G2 public keys; the first key seeds the accumulator."""
    aggregate = None
    for pubkey in pubkeys:
        aggregate = pubkey if aggregate is None else aggregate.add(pubkey)
    if aggregate is None:
        raise InvalidParameterError("pubkeys", "nothing to aggregate")
    return aggregate


# ==============================================================================
# VERIFICATION
# ==============================================================================

def verify_signature(
    pubkey: G2Point,
    signature: G1Point,
    message: Union[bytes, bytearray],
    scheme: Optional[HashToCurve] = None,
) -> None:
    """
    Verify a plain BLS signature: e(H(m), PK2) * e(sigma, -G2) == 1.

    Raises:
        HashToCurveError: Message could not be mapped to G1
        PairingError: Pairing input rejected as malformed
        CurveArithmeticError: Zero key or signature
        SignatureVerificationError: Equation does not hold
    """
    _require_nonzero(pubkey, signature)
    message_hash = try_hash_to_curve(message, scheme)
    pairing_input = (
        message_hash.data
        + pubkey.data
        + signature.data
        + G2_MINUS_ONE.data
    )
    if not _pairing_check(pairing_input):
        raise SignatureVerificationError()


def verify_aggregated_signature(
    apk2: G2Point,
    signature: G1Point,
    message: Union[bytes, bytearray],
    apk1: G1Point,
    scheme: Optional[HashToCurve] = None,
) -> None:
    """
    Verify an aggregate signature with rogue-key mixing.

    With alpha = compute_alpha(H(m), sigma, APK1, APK2) checks

        e(H(m) + alpha * G1, APK2) * e(sigma + alpha * APK1, -G2) == 1

    which only holds when APK2 carries the same secret as APK1.

    Args:
        apk2: Aggregate G2 key supplied with the vote
        signature: Aggregate G1 signature supplied with the vote
        message: Signed message
        apk1: Signer-only G1 aggregate computed from the snapshot
        scheme: Hash-to-curve scheme (default: normalized SHA-256)

    Raises:
        HashToCurveError: Message could not be mapped to G1
        CurveArithmeticError: A mixing step hit an invalid or zero point
        PairingError: Pairing input rejected as malformed
        SignatureVerificationError: Equation does not hold
    """
    _require_nonzero(apk2, signature, apk1)
    message_hash = try_hash_to_curve(message, scheme)
    alpha = compute_alpha(message_hash.data, signature.data, apk1.data, apk2.data)

    scaled_g1 = G1Point.generator().mul(alpha)
    scaled_apk1 = apk1.mul(alpha)
    lhs = message_hash.add(scaled_g1)
    rhs = signature.add(scaled_apk1)

    pairing_input = lhs.data + apk2.data + rhs.data + G2_MINUS_ONE.data
    if not _pairing_check(pairing_input):
        raise SignatureVerificationError()
    logger.debug(f"Aggregate signature verified for apk1={apk1.hex()[:16]}")


def verify_key_pair(g1_pubkey: G1Point, g2_pubkey: G2Point) -> bool:
    """
    Check that a G1 and a G2 key share one secret.

    e(G1, PK2) * e(PK1, -G2) == 1

    Returns:
        True if the keys match, False on mismatch or malformed keys
    """
    if g1_pubkey.is_zero() or g2_pubkey.is_zero():
        return False
    pairing_input = (
        G1Point.generator().data
        + g2_pubkey.data
        + g1_pubkey.data
        + G2_MINUS_ONE.data
    )
    try:
        return _pairing_check(pairing_input)
    except PairingError as e:
        logger.debug(f"Key pair check rejected input: {e}")
        return False
