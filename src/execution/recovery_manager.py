"""
Recovery Manager
================
Per-operation fallback after a batch transaction fails.

The "Medic" of the execution pipeline.
A batch is all-or-nothing: one bad operation sinks its neighbours. When
fallback retry is enabled, each operation from a failed batch is
resubmitted in its own transaction so the healthy ones can land.

Responsibilities:
- Settle batches whose confirmation failed without a verdict
- Decide which failed operations are worth a solo attempt
- Run each of them as a one-operation batch
- Replace the batch-level failure with the solo outcome
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from solders.keypair import Keypair

from src.execution.batch_packer import Batch
from src.execution.operations import BatchResult, Operation
from src.execution.transaction_submitter import SignatureState
from src.shared.execution.execution_result import (
    ErrorCode,
    BATCH_RECOVERABLE_CODES,
    UNSETTLED_CODES,
)
from src.shared.system.logging import Logger

RunBatch = Callable[[Batch], Awaitable[List[BatchResult]]]
ResolveSignature = Callable[[str, Optional[int]], Awaitable[Tuple[SignatureState, Optional[str]]]]


class RecoveryManager:
    """
    Retries failed batch operations one transaction at a time.

    A batch transaction that was sent but never confirmed may still land.
    Its signature is looked up first: a landed batch is reported as
    succeeded, and a batch that may yet land is never retried, so no
    operation executes twice.

    Usage:
        medic = RecoveryManager(executor.run_batch, submitter.resolve_signature)
        results = await medic.recover(operations, results, batch_sizes, fee_payer)
    """

    def __init__(
        self,
        run_batch: RunBatch,
        resolve_signature: Optional[ResolveSignature] = None,
        logger: Any = Logger,
        delay_between_ms: int = 0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.run_batch = run_batch
        self.resolve_signature = resolve_signature
        self.logger = logger
        self.delay_between_ms = delay_between_ms
        self._sleep = sleep

        # Statistics
        self._attempted = 0
        self._recovered = 0
        self._landed_late = 0
        self._held = 0

    @staticmethod
    def is_retryable(result: BatchResult, batch_size: int) -> bool:
        """
        A failure is worth a solo attempt only if it came from the batch
        transaction rather than from the operation itself.

        Build and encoding errors never change on retry. A lone operation
        rejected by the program, or too large on its own, would fail
        identically.
        """
        if result.success:
            return False
        if result.error_code not in BATCH_RECOVERABLE_CODES:
            return False
        if batch_size <= 1 and result.error_code in (ErrorCode.PROGRAM_ERROR, ErrorCode.LIMIT_EXCEEDED):
            return False
        return True

    async def settle(self, results: List[BatchResult]) -> Tuple[List[BatchResult], Set[int]]:
        """
        Look up every unconfirmed batch signature once.

        Returns:
            (results with settled outcomes applied, positions that must not
            be retried because their transaction may still land)
        """
        settled = list(results)
        held: Set[int] = set()
        verdicts: Dict[str, Tuple[SignatureState, Optional[str]]] = {}

        for position, result in enumerate(results):
            if result.success or result.error_code not in UNSETTLED_CODES or not result.signature:
                continue

            if result.signature not in verdicts:
                if self.resolve_signature is None:
                    verdicts[result.signature] = (SignatureState.UNRESOLVED, None)
                else:
                    verdicts[result.signature] = await self.resolve_signature(
                        result.signature, result.last_valid_block_height
                    )
                self._log_verdict(result, *verdicts[result.signature])
            state, detail = verdicts[result.signature]

            match state:
                case SignatureState.LANDED:
                    settled[position] = BatchResult(
                        operation_id=result.operation_id,
                        type=result.type,
                        success=True,
                        signature=result.signature,
                        batch_index=result.batch_index,
                    )
                    self._landed_late += 1
                case SignatureState.FAILED:
                    settled[position] = replace(result, error=detail, error_code=ErrorCode.PROGRAM_ERROR)
                case SignatureState.EXPIRED:
                    pass
                case SignatureState.UNRESOLVED:
                    settled[position] = replace(
                        result, error=f"{result.error}; transaction may still land, not retried"
                    )
                    held.add(position)
                    self._held += 1

        return settled, held

    def _log_verdict(self, result: BatchResult, state: SignatureState, detail: Optional[str]):
        sig = result.signature[:16]
        match state:
            case SignatureState.LANDED:
                self.logger.success(f"[RECOVERY] {sig}... landed despite failed confirmation")
            case SignatureState.FAILED:
                self.logger.warning(f"[RECOVERY] {sig}... executed with error: {detail}")
            case SignatureState.EXPIRED:
                self.logger.info(f"[RECOVERY] {sig}... expired unseen, safe to retry")
            case SignatureState.UNRESOLVED:
                self.logger.warning(f"[RECOVERY] {sig}... still unresolved, holding its operations")

    async def recover(
        self,
        operations: Sequence[Operation],
        results: List[BatchResult],
        batch_sizes: Dict[int, int],
        fee_payer: Optional[Keypair] = None,
    ) -> List[BatchResult]:
        """
        Retry eligible failures in place.

        Args:
            operations: Operations, aligned with results
            results: Current per-operation results (not mutated)
            batch_sizes: Batch index -> number of operations in that batch
            fee_payer: Fee payer for solo transactions; the sender pays when None

        Returns:
            New results list with settled and retried entries replaced
        """
        recovered, held = await self.settle(results)
        candidates = [
            i for i, result in enumerate(recovered)
            if i not in held and self.is_retryable(result, batch_sizes.get(result.batch_index, 1))
        ]
        if not candidates:
            return recovered

        self.logger.info(f"[RECOVERY] Retrying {len(candidates)} failed operation(s) individually")

        for n, position in enumerate(candidates):
            if n > 0 and self.delay_between_ms > 0:
                await self._sleep(self.delay_between_ms / 1000)

            op = operations[position]
            previous = recovered[position]
            solo = Batch(
                index=previous.batch_index if previous.batch_index is not None else -1,
                operations=[op],
                fee_payer=fee_payer if fee_payer is not None else op.sender,
            )

            self._attempted += 1
            outcome = (await self.run_batch(solo))[0]
            recovered[position] = outcome

            if outcome.success:
                self._recovered += 1
                self.logger.success(f"[RECOVERY] {op.id} landed on solo retry")
            else:
                self.logger.warning(f"[RECOVERY] {op.id} still failing: {outcome.error}")

        return recovered

    def get_stats(self) -> dict:
        return {
            "attempted": self._attempted,
            "recovered": self._recovered,
            "landed_late": self._landed_late,
            "held": self._held,
        }
