"""
Unified Execution Result
========================
Standardized return type and error taxonomy for every submission path.

The submitter returns an ExecutionResult for each transaction it sends;
the batch executor fans that single result out to one BatchResult per
operation in the batch.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum
import time


class ExecutionStatus(Enum):
    """Status codes for execution results."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"
    EXPIRED = "EXPIRED"


class ErrorCode(Enum):
    """Standardized error codes for execution failures."""

    # Input errors (never retried)
    INVALID_OPERATION = "INVALID_OPERATION"
    MISSING_SENDER = "MISSING_SENDER"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"

    # Encoding / PDA errors (never retried)
    ENCODING_ERROR = "ENCODING_ERROR"
    BUILD_FAILED = "BUILD_FAILED"

    # Packing errors (recoverable only by shrinking the batch)
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"

    # Network errors (retried with backoff)
    RPC_ERROR = "RPC_ERROR"
    TIMEOUT = "TIMEOUT"
    BLOCKHASH_EXPIRED = "BLOCKHASH_EXPIRED"

    # On-chain errors (surfaced verbatim)
    PROGRAM_ERROR = "PROGRAM_ERROR"

    # Policy
    SKIPPED = "SKIPPED"

    # General
    UNKNOWN = "UNKNOWN"


# Failures that a smaller transaction composition may resolve
BATCH_RECOVERABLE_CODES = frozenset({
    ErrorCode.LIMIT_EXCEEDED,
    ErrorCode.RPC_ERROR,
    ErrorCode.TIMEOUT,
    ErrorCode.BLOCKHASH_EXPIRED,
    ErrorCode.PROGRAM_ERROR,
})

# Failures after which a sent transaction may still land
UNSETTLED_CODES = frozenset({
    ErrorCode.RPC_ERROR,
    ErrorCode.TIMEOUT,
})


@dataclass
class ExecutionResult:
    """
    Result of submitting one transaction.

    Usage:
        result = await submitter.submit_and_confirm(instructions, signers, payer)
        if result.success:
            log(f"Confirmed {result.tx_signature}")
        else:
            handle_error(result.error_code)
    """

    # Core status
    success: bool
    status: ExecutionStatus = ExecutionStatus.FAILED

    # Transaction details
    tx_signature: Optional[str] = None
    blockhash: Optional[str] = None
    last_valid_block_height: Optional[int] = None
    attempts: int = 0

    # Error handling
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    # Context
    timestamp: float = field(default_factory=time.time)
    latency_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/storage."""
        return {
            "success": self.success,
            "status": self.status.value,
            "tx_signature": self.tx_signature,
            "attempts": self.attempts,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
            "latency_ms": self.latency_ms,
        }

    def __repr__(self) -> str:
        if self.success:
            sig = self.tx_signature[:12] if self.tx_signature else "N/A"
            return f"ExecutionResult(SUCCESS: tx={sig}..., attempts={self.attempts})"
        return f"ExecutionResult(FAILED: {self.error_code}, {self.error_message})"


# ═══════════════════════════════════════════════════════════════════════════════
# FACTORY FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def success_result(tx_signature: str, **kwargs) -> ExecutionResult:
    """Create a successful execution result."""
    return ExecutionResult(
        success=True,
        status=ExecutionStatus.SUCCESS,
        tx_signature=tx_signature,
        blockhash=kwargs.get("blockhash"),
        last_valid_block_height=kwargs.get("last_valid_block_height"),
        attempts=kwargs.get("attempts", 1),
        latency_ms=kwargs.get("latency_ms", 0.0),
    )


def failure_result(
    error_code: ErrorCode,
    error_message: str,
    status: ExecutionStatus = ExecutionStatus.FAILED,
    **kwargs
) -> ExecutionResult:
    """Create a failed execution result."""
    return ExecutionResult(
        success=False,
        status=status,
        error_code=error_code,
        error_message=error_message,
        tx_signature=kwargs.get("tx_signature"),
        blockhash=kwargs.get("blockhash"),
        last_valid_block_height=kwargs.get("last_valid_block_height"),
        attempts=kwargs.get("attempts", 0),
        logs=kwargs.get("logs") or [],
        latency_ms=kwargs.get("latency_ms", 0.0),
    )
