"""
Batch Engine Exceptions
=======================
Raised while turning operations into instructions and batches.

Each exception carries the ErrorCode the executor reports for the
affected operation.
"""

from __future__ import annotations

from typing import List, Optional

from src.shared.execution.execution_result import ErrorCode


class BatchEngineError(Exception):
    """Base class for batch engine failures."""

    error_code: ErrorCode = ErrorCode.UNKNOWN


class InvalidOperation(BatchEngineError):
    """Operation payload is malformed or inconsistent with its type."""

    error_code = ErrorCode.INVALID_OPERATION


class InstructionBuildError(BatchEngineError):
    """An operation could not be turned into instructions."""

    error_code = ErrorCode.BUILD_FAILED

    def __init__(self, message: str, operation_id: Optional[str] = None):
        super().__init__(message)
        self.operation_id = operation_id


class MissingSender(InstructionBuildError):
    """Operation has no signing keypair."""

    error_code = ErrorCode.MISSING_SENDER

    def __init__(self, operation_id: str):
        super().__init__(f"Operation {operation_id} is missing sender Keypair", operation_id)


class UnknownOperationType(InstructionBuildError):
    """Operation tag outside the supported set."""

    error_code = ErrorCode.UNKNOWN_OPERATION

    def __init__(self, op_type: object, operation_id: Optional[str] = None):
        super().__init__(f"Unknown operation type: {op_type}", operation_id)
        self.op_type = op_type


class InstructionEncodingError(InstructionBuildError):
    """Argument does not fit the fixed binary layout."""

    error_code = ErrorCode.ENCODING_ERROR


class TransactionLimitExceeded(BatchEngineError):
    """Built instructions violate the transaction size or account limits."""

    error_code = ErrorCode.LIMIT_EXCEEDED

    def __init__(self, reasons: List[str]):
        super().__init__("; ".join(reasons) or "Transaction exceeds limits")
        self.reasons = list(reasons)
