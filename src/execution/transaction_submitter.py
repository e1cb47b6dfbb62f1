"""
Transaction Submitter
=====================
Signs, sends and confirms one batch transaction.

The "Pilot" of the execution pipeline.
Handles the messy real-world interaction with Solana.

Responsibilities:
- Assemble and sign versioned transactions
- Validate fee payer, instructions and signer set before sending
- Send with preflight and confirm against the blockhash's expiry height
- Retry transport failures without ever sending a second, different
  transaction for the same batch
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
from dataclasses import dataclass
from enum import Enum

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.commitment import Commitment
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from config.settings import Settings
from src.pumpfun.program_errors import describe_program_error
from src.shared.execution.execution_result import (
    ExecutionResult,
    ExecutionStatus,
    ErrorCode,
    success_result,
    failure_result,
)
from src.shared.system.logging import Logger

T = TypeVar("T")

# Transport-level failures: the request may not have reached the node
TRANSIENT_ERRORS = (SolanaRpcException, httpx.HTTPError, asyncio.TimeoutError, ConnectionError)

# Anything a read call can raise: transport failures plus JSON-RPC error responses
RPC_ERRORS = (RPCException,) + TRANSIENT_ERRORS


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SubmitterConfig:
    """Configuration for transaction submission."""

    commitment: str = Settings.COMMITMENT
    skip_preflight: bool = Settings.SKIP_PREFLIGHT

    # Retries (transport errors only)
    max_retries: int = Settings.SUBMIT_MAX_RETRIES
    retry_base_delay_sec: float = Settings.SUBMIT_RETRY_BASE_DELAY_SEC

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff: base * 2^(attempt-1)."""
        return self.retry_base_delay_sec * (2 ** (attempt - 1))


class SignatureState(Enum):
    """Where a sent transaction stands once confirmation gave no answer."""

    LANDED = "LANDED"          # cluster knows it, no error
    FAILED = "FAILED"          # cluster knows it, executed with an error
    EXPIRED = "EXPIRED"        # unknown and its blockhash can no longer land
    UNRESOLVED = "UNRESOLVED"  # unknown but may still land


def _rpc_error_details(exc: RPCException) -> Tuple[str, List[str]]:
    """Message and simulation logs carried by an RPCException."""
    payload = exc.args[0] if exc.args else exc
    if isinstance(payload, dict):
        message = payload.get("message") or str(payload)
        logs = (payload.get("data") or {}).get("logs") or []
        return message, list(logs)

    message = getattr(payload, "message", None) or str(payload)
    data = getattr(payload, "data", None)
    logs = getattr(data, "logs", None) or []
    err = getattr(data, "err", None)
    if err is not None:
        message = f"{message} ({err})"
    return message, list(logs)


# ═══════════════════════════════════════════════════════════════════════════════
# TRANSACTION SUBMITTER
# ═══════════════════════════════════════════════════════════════════════════════

class TransactionSubmitter:
    """
    Sends one transaction per call and waits for confirmation.

    A signed transaction is identified by its first signature, which is
    fixed by the blockhash it was signed against. Transport failures
    resend the same bytes, so the network can execute it at most once.
    The transaction is never re-signed with a fresh blockhash here; an
    expired blockhash is reported as BLOCKHASH_EXPIRED.

    Usage:
        submitter = TransactionSubmitter(rpc_client)
        result = await submitter.submit_and_confirm(instructions, signers, fee_payer)
    """

    def __init__(
        self,
        rpc_client: Any,
        config: Optional[SubmitterConfig] = None,
        logger: Any = Logger,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize submitter.

        Args:
            rpc_client: AsyncClient-compatible RPC client
            config: Submission configuration
            logger: Log sink
            sleep: Backoff sleeper (injectable for tests)
        """
        self.rpc = rpc_client
        self.config = config or SubmitterConfig()
        self.logger = logger
        self._sleep = sleep
        self._commitment = Commitment(self.config.commitment)

        # signature -> last valid block height, for transactions not yet settled
        self._in_flight: Dict[str, int] = {}

        # Statistics
        self._submissions = 0
        self._confirmations = 0
        self._failures = 0
        self._expirations = 0
        self._resends = 0

    # ─────────────────────────────────────────────────────────────────────────
    # Assembly
    # ─────────────────────────────────────────────────────────────────────────

    @staticmethod
    def validate(
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        fee_payer: Optional[Pubkey],
    ) -> List[str]:
        """Pre-send checks. Returns a list of problems (empty when valid)."""
        errors = []
        if fee_payer is None:
            errors.append("Transaction fee payer is required")
        if not instructions:
            errors.append("Transaction has no instructions")

        keys = [s.pubkey() for s in signers]
        if len(set(keys)) != len(keys):
            errors.append("Duplicate signers provided")
        if fee_payer is not None and fee_payer not in keys:
            errors.append(f"Missing signature for fee payer {fee_payer}")

        signer_set = set(keys)
        for index, ix in enumerate(instructions):
            for meta in ix.accounts:
                if meta.is_signer and meta.pubkey not in signer_set:
                    errors.append(f"Instruction {index} requires signature from {meta.pubkey}")
        return errors

    @staticmethod
    def build_transaction(
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        fee_payer: Pubkey,
        blockhash: Hash,
    ) -> VersionedTransaction:
        """Compile a v0 message and sign it with exactly the required keys."""
        message = MessageV0.try_compile(
            payer=fee_payer,
            instructions=list(instructions),
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )

        by_key = {kp.pubkey(): kp for kp in signers}
        required = message.account_keys[:message.header.num_required_signatures]
        missing = [str(key) for key in required if key not in by_key]
        if missing:
            raise ValueError(f"Missing signers: {', '.join(missing)}")

        return VersionedTransaction(message, [by_key[key] for key in required])

    # ─────────────────────────────────────────────────────────────────────────
    # Submission
    # ─────────────────────────────────────────────────────────────────────────

    async def submit_and_confirm(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        fee_payer: Pubkey,
    ) -> ExecutionResult:
        """
        Sign, send and confirm one transaction.

        Args:
            instructions: Instructions in execution order
            signers: Every distinct sender keypair plus the fee payer
            fee_payer: Fee payer pubkey

        Returns:
            ExecutionResult with the transaction signature or the failure
        """
        start_time = time.time()
        self._submissions += 1

        def elapsed_ms() -> float:
            return (time.time() - start_time) * 1000

        problems = self.validate(instructions, signers, fee_payer)
        if problems:
            self._failures += 1
            return failure_result(ErrorCode.BUILD_FAILED, "; ".join(problems), latency_ms=elapsed_ms())

        try:
            blockhash, last_valid = await self._get_latest_blockhash()
        except RPC_ERRORS as e:
            self._failures += 1
            return failure_result(ErrorCode.RPC_ERROR, f"Failed to fetch blockhash: {e}", latency_ms=elapsed_ms())

        try:
            tx = self.build_transaction(instructions, signers, fee_payer, blockhash)
        except Exception as e:
            self._failures += 1
            return failure_result(ErrorCode.BUILD_FAILED, f"Transaction build failed: {e}", latency_ms=elapsed_ms())

        signature = tx.signatures[0]
        sig_str = str(signature)
        self._in_flight[sig_str] = last_valid
        self.logger.debug(
            f"[SUBMIT] TX built: {len(instructions)} ixs, {len(tx.signatures)} signer(s), {sig_str[:16]}..."
        )

        try:
            result = await self._send_and_confirm(bytes(tx), signature, blockhash, last_valid)
        finally:
            self._in_flight.pop(sig_str, None)

        result.latency_ms = elapsed_ms()
        if result.success:
            self._confirmations += 1
            self.logger.success(f"[SUBMIT] Confirmed {sig_str[:16]}... ({result.latency_ms:.0f}ms)")
        else:
            self._failures += 1
            if result.error_code == ErrorCode.BLOCKHASH_EXPIRED:
                self._expirations += 1
            self.logger.error(f"[SUBMIT] {sig_str[:16]}... failed: {result.error_message}")
        return result

    async def _send_and_confirm(
        self,
        raw: bytes,
        signature: Signature,
        blockhash: Hash,
        last_valid: int,
    ) -> ExecutionResult:
        context = {
            "tx_signature": str(signature),
            "blockhash": str(blockhash),
            "last_valid_block_height": last_valid,
        }
        opts = TxOpts(
            skip_preflight=self.config.skip_preflight,
            preflight_commitment=self._commitment,
        )

        attempts = 0
        while True:
            attempts += 1
            try:
                await self.rpc.send_raw_transaction(raw, opts=opts)
                break
            except RPCException as e:
                message, logs = _rpc_error_details(e)
                if "blockhash not found" in message.lower():
                    return failure_result(
                        ErrorCode.BLOCKHASH_EXPIRED, message,
                        status=ExecutionStatus.EXPIRED, attempts=attempts, **context,
                    )
                return failure_result(
                    ErrorCode.PROGRAM_ERROR, describe_program_error(message),
                    logs=logs, attempts=attempts, **context,
                )
            except TRANSIENT_ERRORS as e:
                if await self._signature_seen(signature):
                    self.logger.debug(f"[SUBMIT] {str(signature)[:16]}... seen after send error, not resending")
                    break
                if attempts > self.config.max_retries:
                    return failure_result(
                        ErrorCode.RPC_ERROR, f"Send failed after {attempts} attempts: {e}",
                        attempts=attempts, **context,
                    )
                delay = self.config.backoff_delay(attempts)
                self._resends += 1
                self.logger.warning(
                    f"[SUBMIT] Send error ({e}), resending same transaction in {delay:.1f}s "
                    f"({attempts}/{self.config.max_retries})"
                )
                await self._sleep(delay)

        try:
            resp = await self._with_backoff(
                "confirm_transaction",
                lambda: self.rpc.confirm_transaction(
                    signature, self._commitment, last_valid_block_height=last_valid
                ),
            )
        except TransactionExpiredBlockheightExceededError as e:
            return failure_result(
                ErrorCode.BLOCKHASH_EXPIRED, f"Blockhash expired before confirmation: {e}",
                status=ExecutionStatus.EXPIRED, attempts=attempts, **context,
            )
        except UnconfirmedTxError as e:
            return failure_result(
                ErrorCode.TIMEOUT, f"Confirmation timeout: {e}",
                status=ExecutionStatus.TIMEOUT, attempts=attempts, **context,
            )
        except RPCException as e:
            message, logs = _rpc_error_details(e)
            return failure_result(
                ErrorCode.RPC_ERROR, f"Confirmation failed: {message}",
                logs=logs, attempts=attempts, **context,
            )
        except TRANSIENT_ERRORS as e:
            return failure_result(
                ErrorCode.RPC_ERROR, f"Confirmation failed: {e}", attempts=attempts, **context,
            )

        statuses = getattr(resp, "value", None) or []
        status = statuses[0] if statuses else None
        err = getattr(status, "err", None)
        if err is not None:
            return failure_result(
                ErrorCode.PROGRAM_ERROR, describe_program_error(f"Transaction failed: {err}"),
                attempts=attempts, **context,
            )

        return success_result(
            str(signature),
            blockhash=str(blockhash),
            last_valid_block_height=last_valid,
            attempts=attempts,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # RPC helpers
    # ─────────────────────────────────────────────────────────────────────────

    async def _with_backoff(self, label: str, call: Callable[[], Awaitable[T]]) -> T:
        """Retry an idempotent read on transport errors."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await call()
            except TRANSIENT_ERRORS as e:
                if attempt > self.config.max_retries:
                    raise
                delay = self.config.backoff_delay(attempt)
                self.logger.warning(
                    f"[SUBMIT] {label} failed ({e}), retry {attempt}/{self.config.max_retries} in {delay:.1f}s"
                )
                await self._sleep(delay)

    async def _get_latest_blockhash(self) -> Tuple[Hash, int]:
        resp = await self._with_backoff(
            "get_latest_blockhash",
            lambda: self.rpc.get_latest_blockhash(self._commitment),
        )
        return resp.value.blockhash, resp.value.last_valid_block_height

    async def _signature_seen(self, signature: Signature) -> bool:
        """True when the cluster already knows this signature."""
        try:
            resp = await self.rpc.get_signature_statuses([signature])
        except RPC_ERRORS as e:
            self.logger.debug(f"[SUBMIT] Status check failed: {e}")
            return False
        statuses = getattr(resp, "value", None) or []
        return bool(statuses) and statuses[0] is not None

    async def resolve_signature(
        self,
        signature: str,
        last_valid_block_height: Optional[int],
    ) -> Tuple[SignatureState, Optional[str]]:
        """
        Settle a transaction whose confirmation failed without a verdict.

        A signature the cluster has never seen can still land until the
        block height passes its blockhash's last valid height, so it is
        only EXPIRED once that height is behind us.

        Returns:
            (state, detail) where detail is the decoded on-chain error for
            FAILED or the lookup error for UNRESOLVED
        """
        try:
            resp = await self.rpc.get_signature_statuses(
                [Signature.from_string(signature)], search_transaction_history=True
            )
            statuses = getattr(resp, "value", None) or []
            status = statuses[0] if statuses else None
            if status is not None:
                err = getattr(status, "err", None)
                if err is None:
                    return SignatureState.LANDED, None
                return SignatureState.FAILED, describe_program_error(f"Transaction failed: {err}")

            if last_valid_block_height is None:
                return SignatureState.UNRESOLVED, None
            height = (await self.rpc.get_block_height(self._commitment)).value
        except RPC_ERRORS as e:
            self.logger.warning(f"[SUBMIT] Could not resolve {signature[:16]}...: {e}")
            return SignatureState.UNRESOLVED, str(e)

        if height > last_valid_block_height:
            return SignatureState.EXPIRED, None
        return SignatureState.UNRESOLVED, None

    @property
    def in_flight(self) -> Dict[str, int]:
        """Unsettled signatures and the block height after which they expire."""
        return dict(self._in_flight)

    def get_stats(self) -> dict:
        """Get submission statistics."""
        success_rate = (
            self._confirmations / self._submissions * 100
            if self._submissions > 0
            else 0
        )

        return {
            "submissions": self._submissions,
            "confirmations": self._confirmations,
            "failures": self._failures,
            "expirations": self._expirations,
            "resends": self._resends,
            "success_rate_pct": round(success_rate, 2),
        }
