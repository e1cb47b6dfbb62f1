"""
Batch Sizer
===========
Adaptive probe for how many operations fit in one transaction.

An AMM swap references far more accounts than a SOL transfer, so
capacity depends on the operation mix and no formula predicts it. The
sizer builds the real instructions for growing prefixes of the list and
runs the local estimator on each until one stops fitting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair

from config.settings import Settings
from src.execution.limits import estimate_transaction_limits, TransactionLimits
from src.execution.operations import Operation
from src.shared.execution.errors import MissingSender
from src.shared.system.logging import Logger

BuildFn = Callable[[Operation], Awaitable[List[Instruction]]]
Estimator = Callable[..., TransactionLimits]


@dataclass(frozen=True)
class BatchSizeDecision:
    """Probe outcome."""

    max_ops_per_batch: int
    reasoning: str
    last_fit_size_bytes: int = 0
    # False when even one operation exceeded the limits; max_ops_per_batch
    # is still reported as 1 in that case
    single_operation_fits: bool = True


async def determine_optimal_batch_size(
    operations: Sequence[Operation],
    fee_payer: Optional[Keypair],
    build_fn: BuildFn,
    max_probe: int = Settings.BATCH_MAX_PROBE_SIZE,
    estimator: Estimator = estimate_transaction_limits,
    logger: Any = Logger,
) -> BatchSizeDecision:
    """
    Find the largest prefix size that fits one transaction.

    Probes sizes 1..min(len(operations), max_probe). Probing stops at
    the first size that does not fit or whose instructions fail to
    build, and the last size that fitted is returned.

    Args:
        operations: Operations in submission order
        fee_payer: Batch fee payer, or None when each sender pays
        build_fn: Async builder for one operation
        max_probe: Upper bound on probed size
        estimator: Limit estimator (injectable for tests)
        logger: Log sink

    Returns:
        BatchSizeDecision
    """
    if not operations:
        return BatchSizeDecision(max_ops_per_batch=0, reasoning="No operations provided")

    max_safe_ops = 1
    last_fit_size = 0
    single_fits = True
    probe_limit = min(len(operations), max(max_probe, 1))

    instructions: List[Instruction] = []
    signers: List[Any] = [fee_payer] if fee_payer is not None else []

    # Prefix n+1 is prefix n plus one operation, so instructions accumulate
    for test_size in range(1, probe_limit + 1):
        op = operations[test_size - 1]
        try:
            if op.sender is None:
                raise MissingSender(op.id)
            signers.append(op.sender)
            instructions.extend(await build_fn(op))
        except Exception as e:
            logger.debug(f"[SIZER] Error testing batch size {test_size}: {e}")
            break

        limits = estimator(instructions, signers)
        if limits.can_fit:
            max_safe_ops = test_size
            last_fit_size = limits.estimated_size_bytes
            continue

        if test_size == 1:
            single_fits = False
            logger.warning(
                f"[SIZER] Operation {op.id} alone exceeds transaction limits: "
                f"{'; '.join(limits.reasons)}"
            )
        break

    reasoning = (
        f"Determined max {max_safe_ops} operations per batch "
        f"(last successful size: {last_fit_size} bytes)"
    )
    logger.debug(f"[SIZER] {reasoning}")

    return BatchSizeDecision(
        max_ops_per_batch=max_safe_ops,
        reasoning=reasoning,
        last_fit_size_bytes=last_fit_size,
        single_operation_fits=single_fits,
    )
