"""
Batch Executor
==============
Runs a list of operations as packed, signed transactions and reports one
result per operation.

Pipeline:
1. Operations without a sender fail immediately (MISSING_SENDER)
2. Optional dynamic sizing probes how many operations fit one transaction
3. The packer groups operations into batches with one fee payer each
4. Each batch: build every operation, check limits, submit, confirm
5. Optional fallback settles unconfirmed signatures, then resubmits
   failed batch operations one by one

Result i always belongs to operation i. Operations in one batch share
the batch's signature or failure reason.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from solders.keypair import Keypair

from config.settings import Settings
from src.execution.amm_gateway import AmmSdk
from src.execution.batch_packer import Batch, BatchPacker
from src.execution.batch_sizer import determine_optimal_batch_size
from src.execution.instruction_factory import BuildContext, InstructionFactory
from src.execution.limits import estimate_transaction_limits
from src.execution.operations import BatchResult, Operation
from src.execution.recovery_manager import RecoveryManager
from src.execution.transaction_submitter import TransactionSubmitter
from src.shared.execution.errors import BatchEngineError, TransactionLimitExceeded
from src.shared.execution.execution_result import ErrorCode
from src.shared.system.logging import Logger


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchExecutionOptions:
    """Execution policy for one run."""

    max_ops_per_batch: int = Settings.BATCH_MAX_OPS_PER_BATCH  # <= 0: no cap
    max_parallel: int = Settings.BATCH_MAX_PARALLEL  # batches in flight
    delay_between_ms: int = Settings.BATCH_DELAY_BETWEEN_MS
    dynamic_batching: bool = Settings.BATCH_DYNAMIC_SIZING
    max_probe: int = Settings.BATCH_MAX_PROBE_SIZE
    retry_failed: bool = Settings.BATCH_RETRY_FAILED
    disable_fallback_retry: bool = Settings.BATCH_DISABLE_FALLBACK_RETRY
    fail_fast: bool = Settings.BATCH_FAIL_FAST

    @property
    def fallback_enabled(self) -> bool:
        return self.retry_failed and not self.disable_fallback_retry


# ═══════════════════════════════════════════════════════════════════════════════
# BATCH EXECUTOR
# ═══════════════════════════════════════════════════════════════════════════════

class BatchExecutor:
    """
    Executes operations batch by batch.

    Usage:
        executor = BatchExecutor(AsyncClient(Settings.RPC_URL), amm_sdk=sdk)
        results = await executor.execute(operations, fee_payer=payer)
    """

    def __init__(
        self,
        rpc_client: Any,
        amm_sdk: Optional[AmmSdk] = None,
        factory: Optional[InstructionFactory] = None,
        submitter: Optional[TransactionSubmitter] = None,
        packer: Optional[BatchPacker] = None,
        logger: Any = Logger,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.rpc = rpc_client
        self.amm_sdk = amm_sdk
        self.logger = logger
        self.factory = factory or InstructionFactory(logger=logger)
        self.submitter = submitter or TransactionSubmitter(rpc_client, logger=logger, sleep=sleep)
        self.packer = packer or BatchPacker(logger=logger)
        self._sleep = sleep

        # Statistics
        self._batches_run = 0
        self._batches_failed = 0

    def _context(self, fee_payer: Optional[Keypair]) -> BuildContext:
        return BuildContext(
            connection=self.rpc,
            amm_sdk=self.amm_sdk,
            fee_payer=fee_payer.pubkey() if fee_payer is not None else None,
        )

    async def execute(
        self,
        operations: Sequence[Operation],
        fee_payer: Optional[Keypair] = None,
        options: Optional[BatchExecutionOptions] = None,
    ) -> List[BatchResult]:
        """
        Execute every operation and return results in input order.

        Args:
            operations: Operations to run
            fee_payer: Pays fees for every batch; each batch's first sender
                pays when None
            options: Execution policy

        Returns:
            One BatchResult per operation, same order
        """
        options = options or BatchExecutionOptions()
        operations = list(operations)
        results: List[Optional[BatchResult]] = [None] * len(operations)
        if not operations:
            return []

        if self.logger is Logger:
            Logger.section(f"Executing {len(operations)} operation(s)")

        # 1. Sender check
        ready: List[int] = []
        for position, op in enumerate(operations):
            if op.sender is None:
                results[position] = BatchResult.failed(
                    op, f"Operation {op.id} is missing sender Keypair", ErrorCode.MISSING_SENDER
                )
            else:
                ready.append(position)
        ready_ops = [operations[p] for p in ready]

        # 2. Batch size
        cap = options.max_ops_per_batch
        if options.dynamic_batching and ready_ops:
            decision = await determine_optimal_batch_size(
                ready_ops,
                fee_payer,
                partial(self.factory.build, context=self._context(fee_payer)),
                max_probe=options.max_probe,
                logger=self.logger,
            )
            cap = min(decision.max_ops_per_batch, cap) if cap > 0 else decision.max_ops_per_batch
            self.logger.info(f"[BATCH] Dynamic batching: {decision.reasoning}; using {cap} per batch")

        # 3. Pack
        batches = self.packer.pack(ready_ops, fee_payer, cap)

        # 4. Run
        batch_results = await self._run_all(batches, options)
        for batch, outcome in zip(batches, batch_results):
            for offset, result in enumerate(outcome):
                results[ready[batch.start + offset]] = result

        # 5. Fallback
        if options.fallback_enabled:
            medic = RecoveryManager(
                self.run_batch,
                resolve_signature=self.submitter.resolve_signature,
                logger=self.logger,
                delay_between_ms=options.delay_between_ms,
                sleep=self._sleep,
            )
            results = await medic.recover(
                operations,
                results,
                {b.index: len(b) for b in batches},
                fee_payer,
            )

        succeeded = sum(1 for r in results if r.success)
        self.logger.info(
            f"[EXECUTOR] {succeeded}/{len(results)} operation(s) succeeded across {len(batches)} batch(es)"
        )
        return results

    async def _run_all(self, batches: List[Batch], options: BatchExecutionOptions) -> List[List[BatchResult]]:
        """Run batches with bounded concurrency, pacing and fail-fast."""
        semaphore = asyncio.Semaphore(max(1, options.max_parallel))
        pace_lock = asyncio.Lock()
        started: List[int] = []
        failed_batch: List[int] = []

        async def run(batch: Batch) -> List[BatchResult]:
            async with semaphore:
                async with pace_lock:
                    if failed_batch and options.fail_fast:
                        return self._skipped(batch, failed_batch[0])
                    if started and options.delay_between_ms > 0:
                        self.logger.debug(f"[EXECUTOR] Waiting {options.delay_between_ms}ms before next batch")
                        await self._sleep(options.delay_between_ms / 1000)
                    started.append(batch.index)

                outcome = await self.run_batch(batch)
                if any(not r.success for r in outcome):
                    failed_batch.append(batch.index)
                return outcome

        return list(await asyncio.gather(*(run(b) for b in batches)))

    def _skipped(self, batch: Batch, failed_index: int) -> List[BatchResult]:
        reason = f"Skipped: fail-fast after batch {failed_index + 1} failed"
        return [BatchResult.failed(op, reason, ErrorCode.SKIPPED, batch.index) for op in batch.operations]

    async def run_batch(self, batch: Batch) -> List[BatchResult]:
        """
        Build, check and submit one batch as a single transaction.

        Build failures fail only their own operation; the rest of the batch
        is still submitted.
        """
        self._batches_run += 1
        context = self._context(batch.fee_payer)
        outcome: Dict[int, BatchResult] = {}
        instructions = []
        built: List[int] = []

        for offset, op in enumerate(batch.operations):
            try:
                ixs = await self.factory.build(op, context)
            except BatchEngineError as e:
                outcome[offset] = BatchResult.failed(op, str(e), e.error_code, batch.index)
                self.logger.error(f"[EXECUTOR] Build failed for {op.id}: {e}")
                continue
            except Exception as e:
                outcome[offset] = BatchResult.failed(
                    op, f"Instruction build failed: {e}", ErrorCode.BUILD_FAILED, batch.index
                )
                self.logger.error(f"[EXECUTOR] Build failed for {op.id}: {e}")
                continue
            instructions.extend(ixs)
            built.append(offset)

        if built:
            submitted = Batch(
                index=batch.index,
                operations=[batch.operations[i] for i in built],
                fee_payer=batch.fee_payer,
            )
            try:
                submitted_results = await self._submit(submitted, instructions)
            except BatchEngineError as e:
                self.logger.error(f"[EXECUTOR] Batch {batch.index + 1} rejected: {e}")
                submitted_results = self._failed_all(submitted, str(e), e.error_code)
            except Exception as e:
                self.logger.error(f"[EXECUTOR] Batch {batch.index + 1} crashed: {e}")
                submitted_results = self._failed_all(
                    submitted, f"Batch submission failed: {e}", ErrorCode.UNKNOWN
                )
            for offset, result in zip(built, submitted_results):
                outcome[offset] = result

        if any(not r.success for r in outcome.values()):
            self._batches_failed += 1
        return [outcome[i] for i in range(len(batch.operations))]

    @staticmethod
    def _failed_all(batch: Batch, reason: str, code: ErrorCode) -> List[BatchResult]:
        return [BatchResult.failed(op, reason, code, batch.index) for op in batch.operations]

    async def _submit(self, batch: Batch, instructions: list) -> List[BatchResult]:
        """
        Raises:
            TransactionLimitExceeded: instructions do not fit one transaction
        """
        signers = batch.signers
        limits = estimate_transaction_limits(instructions, signers)
        if not limits.can_fit:
            raise TransactionLimitExceeded(limits.reasons)

        self.logger.info(
            f"[EXECUTOR] Batch {batch.index + 1}: {len(batch)} op(s), {len(instructions)} ix(s), "
            f"{len(signers)} signer(s), ~{limits.estimated_size_bytes} bytes"
        )
        result = await self.submitter.submit_and_confirm(instructions, signers, batch.fee_payer_pubkey)

        if result.success:
            return [BatchResult.succeeded(op, result.tx_signature, batch.index) for op in batch.operations]
        return [
            BatchResult.failed(
                op,
                result.error_message or "Transaction failed",
                result.error_code or ErrorCode.UNKNOWN,
                batch.index,
                signature=result.tx_signature,
                last_valid_block_height=result.last_valid_block_height,
            )
            for op in batch.operations
        ]

    def get_stats(self) -> dict:
        return {
            "batches_run": self._batches_run,
            "batches_failed": self._batches_failed,
            "submitter": self.submitter.get_stats(),
            "factory": self.factory.get_stats(),
        }
