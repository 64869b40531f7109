"""
NCN Vote Error Handling

All error codes and exception classes.
"""

from enum import IntEnum
from typing import Optional, Any


class ErrorCode(IntEnum):
    """Verifier error codes."""

    # 1xxx - General errors
    INVALID_PARAMETER = 1001
    INVALID_INPUT_LENGTH = 1002

    # 2xxx - Curve errors
    DECOMPRESSION_ERROR = 2001
    CURVE_ARITHMETIC_ERROR = 2002
    HASH_TO_CURVE_ERROR = 2003
    INVALID_SCALAR = 2004

    # 3xxx - Pairing errors
    PAIRING_ERROR = 3001
    SIGNATURE_VERIFICATION_FAILED = 3002
    KEY_MISMATCH = 3003

    # 4xxx - Vote errors
    STALE_OR_WRONG_COUNTER = 4001
    INSUFFICIENT_STAKE = 4002
    QUORUM_NOT_MET = 4003
    INVALID_BITMAP = 4004
    EMPTY_OPERATOR_SET = 4005
    COUNTER_OVERFLOW = 4006

    # 5xxx - Snapshot errors
    TOO_MANY_OPERATORS = 5001
    DUPLICATE_OPERATOR = 5002
    OPERATOR_NOT_FOUND = 5003

    # 6xxx - Storage errors
    STORAGE_ERROR = 6001


class NCNVoteError(Exception):
    """Base exception for all vote verifier errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        result = {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


# ==============================================================================
# General Errors (1xxx)
# ==============================================================================

class InvalidParameterError(NCNVoteError):
    def __init__(self, param: str, message: str = ""):
        msg = f"Invalid parameter: {param}"
        if message:
            msg += f" - {message}"
        super().__init__(ErrorCode.INVALID_PARAMETER, msg, {"parameter": param})


class InvalidInputLengthError(NCNVoteError):
    def __init__(self, field: str, length: int, expected: int):
        super().__init__(
            ErrorCode.INVALID_INPUT_LENGTH,
            f"{field} must be {expected} bytes, got {length}",
            {"field": field, "length": length, "expected": expected}
        )


# ==============================================================================
# Curve Errors (2xxx)
# ==============================================================================

class DecompressionError(NCNVoteError):
    def __init__(self, group: str, reason: str = ""):
        msg = f"Cannot decompress {group} point"
        if reason:
            msg += f": {reason}"
        super().__init__(
            ErrorCode.DECOMPRESSION_ERROR,
            msg,
            {"group": group, "reason": reason}
        )


class CurveArithmeticError(NCNVoteError):
    def __init__(self, operation: str, reason: str = ""):
        msg = f"Curve {operation} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(
            ErrorCode.CURVE_ARITHMETIC_ERROR,
            msg,
            {"operation": operation, "reason": reason}
        )


class HashToCurveError(NCNVoteError):
    def __init__(self, scheme: str, attempts: int):
        super().__init__(
            ErrorCode.HASH_TO_CURVE_ERROR,
            f"No curve point found by {scheme} after {attempts} attempts",
            {"scheme": scheme, "attempts": attempts}
        )


class InvalidScalarError(NCNVoteError):
    def __init__(self, reason: str):
        super().__init__(
            ErrorCode.INVALID_SCALAR,
            f"Invalid scalar: {reason}",
            {"reason": reason}
        )


# ==============================================================================
# Pairing Errors (3xxx)
# ==============================================================================

class PairingError(NCNVoteError):
    def __init__(self, reason: str):
        super().__init__(
            ErrorCode.PAIRING_ERROR,
            f"Pairing input rejected: {reason}",
            {"reason": reason}
        )


class SignatureVerificationError(NCNVoteError):
    def __init__(self, message: str = "Pairing equation does not hold"):
        super().__init__(ErrorCode.SIGNATURE_VERIFICATION_FAILED, message)


class KeyMismatchError(NCNVoteError):
    def __init__(self, operator: str):
        super().__init__(
            ErrorCode.KEY_MISMATCH,
            f"G1 and G2 public keys of {operator} do not share a secret",
            {"operator": operator}
        )


# ==============================================================================
# Vote Errors (4xxx)
# ==============================================================================

class StaleOrWrongCounterError(NCNVoteError):
    def __init__(self, counter: int):
        super().__init__(
            ErrorCode.STALE_OR_WRONG_COUNTER,
            f"Signature does not cover round counter {counter}",
            {"counter": counter}
        )


class InsufficientStakeError(NCNVoteError):
    def __init__(self, index: int, operator: str, reason: str):
        super().__init__(
            ErrorCode.INSUFFICIENT_STAKE,
            f"Operator {index} ({operator}) cannot vote: {reason}",
            {"index": index, "operator": operator, "reason": reason}
        )


class QuorumNotMetError(NCNVoteError):
    def __init__(self, non_signers: int, tolerated: int, operator_count: int):
        super().__init__(
            ErrorCode.QUORUM_NOT_MET,
            f"{non_signers} of {operator_count} operators did not sign, "
            f"at most {tolerated} allowed",
            {
                "non_signers": non_signers,
                "tolerated": tolerated,
                "operator_count": operator_count,
            }
        )


class InvalidBitmapError(NCNVoteError):
    def __init__(self, length: int, expected: int):
        super().__init__(
            ErrorCode.INVALID_BITMAP,
            f"Signer bitmap must be {expected} bytes, got {length}",
            {"length": length, "expected": expected}
        )


class EmptyOperatorSetError(NCNVoteError):
    def __init__(self):
        super().__init__(
            ErrorCode.EMPTY_OPERATOR_SET,
            "Snapshot has no operators"
        )


class CounterOverflowError(NCNVoteError):
    def __init__(self, counter: int):
        super().__init__(
            ErrorCode.COUNTER_OVERFLOW,
            f"Round counter {counter} cannot be incremented",
            {"counter": counter}
        )


# ==============================================================================
# Snapshot Errors (5xxx)
# ==============================================================================

class TooManyOperatorsError(NCNVoteError):
    def __init__(self, count: int, max_operators: int):
        super().__init__(
            ErrorCode.TOO_MANY_OPERATORS,
            f"Snapshot holds {count} operators, limit is {max_operators}",
            {"count": count, "max_operators": max_operators}
        )


class DuplicateOperatorError(NCNVoteError):
    def __init__(self, operator: str):
        super().__init__(
            ErrorCode.DUPLICATE_OPERATOR,
            f"Operator already in snapshot: {operator}",
            {"operator": operator}
        )


class OperatorNotFoundError(NCNVoteError):
    def __init__(self, operator: str):
        super().__init__(
            ErrorCode.OPERATOR_NOT_FOUND,
            f"Operator not in snapshot: {operator}",
            {"operator": operator}
        )


# ==============================================================================
# Storage Errors (6xxx)
# ==============================================================================

class StorageError(NCNVoteError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.STORAGE_ERROR, message, details)
