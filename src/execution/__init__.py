"""
Execution Pipeline
==================
Batch execution layer for pump.fun operations.

Components:
- InstructionFactory: Operation -> instructions (The Architect)
- TransactionSubmitter: Sign, send, confirm (The Pilot)
- RecoveryManager: Solo retry of failed batch operations (The Medic)
- BatchExecutor: Sizing, packing and orchestration
"""

from src.execution.operations import (
    Operation,
    OperationType,
    BatchResult,
    validate_operations,
)

from src.execution.instruction_factory import (
    InstructionFactory,
    BuildContext,
)

from src.execution.amm_gateway import (
    AmmSdk,
    TradeDirection,
)

from src.execution.limits import (
    TransactionLimits,
    estimate_transaction_limits,
)

from src.execution.batch_sizer import (
    BatchSizeDecision,
    determine_optimal_batch_size,
)

from src.execution.batch_packer import (
    Batch,
    BatchPacker,
    chunk,
)

from src.execution.transaction_submitter import (
    TransactionSubmitter,
    SubmitterConfig,
    SignatureState,
)

from src.execution.recovery_manager import RecoveryManager

from src.execution.batch_executor import (
    BatchExecutor,
    BatchExecutionOptions,
)


__all__ = [
    # Operations
    "Operation",
    "OperationType",
    "BatchResult",
    "validate_operations",
    # Factory
    "InstructionFactory",
    "BuildContext",
    "AmmSdk",
    "TradeDirection",
    # Limits & sizing
    "TransactionLimits",
    "estimate_transaction_limits",
    "BatchSizeDecision",
    "determine_optimal_batch_size",
    "Batch",
    "BatchPacker",
    "chunk",
    # Submitter
    "TransactionSubmitter",
    "SubmitterConfig",
    "SignatureState",
    # Recovery
    "RecoveryManager",
    # Executor
    "BatchExecutor",
    "BatchExecutionOptions",
]
