"""
Instruction Factory
===================
Turns one Operation into the ordered instructions that perform it.

The "Architect" of the execution pipeline. Bonding-curve operations are
built locally from PDAs and the fixed-layout encoder; AMM operations are
delegated to the AMM SDK, which is the only network read besides the
optional bonding-curve creator lookup.

Responsibilities:
- Dispatch exhaustively over OperationType
- Prepend idempotent ATA creation where an operation asks for it
- Resolve bonding-curve PDAs and encode buy/sell instructions
- Delegate AMM swaps to the AMM SDK
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from config.settings import Settings
from src.execution.amm_gateway import AmmSdk, TradeDirection
from src.execution.operations import (
    Operation,
    OperationType,
    CreateAccountParams,
    TokenTransferParams,
    SolTransferParams,
    BuyBondingCurveParams,
    SellBondingCurveParams,
    BuyAmmParams,
    SellAmmParams,
)
from src.execution.token_instructions import create_ata_idempotent, token_transfer, sol_transfer
from src.pumpfun.amounts import format_lamports_as_sol, sol_to_lamports
from src.pumpfun.constants import WSOL_MINT
from src.pumpfun.instructions import build_buy_instruction, build_sell_instruction
from src.pumpfun.pda import derive_bonding_curve_pdas, fetch_bonding_curve_creator
from src.shared.execution.errors import (
    InstructionBuildError,
    MissingSender,
    UnknownOperationType,
)
from src.shared.system.logging import Logger


@dataclass(frozen=True)
class BuildContext:
    """What a build may need beyond the operation itself."""

    connection: Any = None  # AsyncClient-compatible, read-only use
    amm_sdk: Optional[AmmSdk] = None
    fee_payer: Optional[Pubkey] = None


# ═══════════════════════════════════════════════════════════════════════════════
# INSTRUCTION FACTORY
# ═══════════════════════════════════════════════════════════════════════════════

class InstructionFactory:
    """
    Builds instructions for batch operations.

    Usage:
        factory = InstructionFactory()
        ixs = await factory.build(operation, BuildContext(connection, amm_sdk, payer))
    """

    def __init__(
        self,
        logger: Any = Logger,
        include_fee_accounts: bool = Settings.INCLUDE_FEE_ACCOUNTS,
        resolve_creator: bool = True,
    ):
        """
        Args:
            logger: Log sink
            include_fee_accounts: Append fee_config/fee_program to curve trades
            resolve_creator: Read the curve creator on-chain when the
                operation does not name one
        """
        self.logger = logger
        self.include_fee_accounts = include_fee_accounts
        self.resolve_creator = resolve_creator

        # Creators never change once a curve exists
        self._creator_cache: Dict[Pubkey, Optional[Pubkey]] = {}

        # Statistics
        self._built = 0
        self._failed = 0

    async def build(self, operation: Operation, context: BuildContext) -> List[Instruction]:
        """
        Build all instructions for one operation, in execution order.

        Raises:
            MissingSender: operation has no sender keypair
            UnknownOperationType: operation type outside OperationType
            InstructionBuildError: anything else that prevents building
        """
        if operation.sender is None:
            self._failed += 1
            raise MissingSender(operation.id)

        try:
            instructions = await self._dispatch(operation, context)
        except Exception:
            self._failed += 1
            raise

        self._built += 1
        self.logger.debug(
            f"[BUILDER] {operation.id} ({operation.type}): {len(instructions)} instruction(s)"
        )
        return instructions

    async def _dispatch(self, operation: Operation, context: BuildContext) -> List[Instruction]:
        user = operation.sender.pubkey()
        payer = context.fee_payer or user
        params = operation.params

        match operation.type:
            case OperationType.CREATE_ACCOUNT:
                return self._build_create_account(payer, params)
            case OperationType.TRANSFER:
                return self._build_token_transfer(operation.id, user, payer, params)
            case OperationType.SOL_TRANSFER:
                return self._build_sol_transfer(operation.id, user, params)
            case OperationType.BUY_BONDING_CURVE:
                return await self._build_curve_buy(user, payer, params, context)
            case OperationType.SELL_BONDING_CURVE:
                return await self._build_curve_sell(user, params, context)
            case OperationType.BUY_AMM:
                return await self._build_amm_buy(operation.id, user, payer, params, context)
            case OperationType.SELL_AMM:
                return await self._build_amm_sell(operation.id, user, params, context)
            case _:
                raise UnknownOperationType(operation.type, operation.id)

    # ─────────────────────────────────────────────────────────────────────────
    # Accounts & transfers
    # ─────────────────────────────────────────────────────────────────────────

    def _build_create_account(self, payer: Pubkey, params: CreateAccountParams) -> List[Instruction]:
        instructions = [create_ata_idempotent(payer, params.owner, params.mint)]
        if params.include_wsol and params.mint != WSOL_MINT:
            instructions.append(create_ata_idempotent(payer, params.owner, WSOL_MINT))
        return instructions

    def _build_token_transfer(
        self,
        op_id: str,
        user: Pubkey,
        payer: Pubkey,
        params: TokenTransferParams,
    ) -> List[Instruction]:
        if params.amount <= 0:
            raise InstructionBuildError("Transfer amount must be greater than 0", op_id)

        instructions = []
        if params.create_account:
            instructions.append(create_ata_idempotent(payer, params.recipient, params.mint))
        instructions.append(token_transfer(user, params.recipient, params.mint, params.amount))
        return instructions

    def _build_sol_transfer(self, op_id: str, user: Pubkey, params: SolTransferParams) -> List[Instruction]:
        try:
            lamports = sol_to_lamports(params.amount)
        except ValueError as e:
            raise InstructionBuildError(str(e), op_id) from e
        if lamports <= 0:
            raise InstructionBuildError("Amount must be greater than 0", op_id)
        self.logger.debug(f"[BUILDER] {op_id}: {format_lamports_as_sol(lamports)} to {params.recipient}")
        return [sol_transfer(user, params.recipient, lamports)]

    # ─────────────────────────────────────────────────────────────────────────
    # Bonding curve
    # ─────────────────────────────────────────────────────────────────────────

    async def _resolve_creator(
        self,
        explicit: Optional[Pubkey],
        mint: Pubkey,
        context: BuildContext,
    ) -> Optional[Pubkey]:
        if explicit is not None:
            return explicit
        if not self.resolve_creator or context.connection is None:
            return None
        if mint in self._creator_cache:
            return self._creator_cache[mint]

        try:
            creator = await fetch_bonding_curve_creator(context.connection, mint, self.logger)
        except Exception as e:
            raise InstructionBuildError(f"Failed to read bonding curve creator for {mint}: {e}") from e

        if creator is None:
            self.logger.warning(f"[BUILDER] No creator on curve for {mint}, using trader vault")
        self._creator_cache[mint] = creator
        return creator

    async def _build_curve_buy(
        self,
        user: Pubkey,
        payer: Pubkey,
        params: BuyBondingCurveParams,
        context: BuildContext,
    ) -> List[Instruction]:
        instructions = []
        if params.create_account:
            instructions.append(create_ata_idempotent(payer, user, params.mint))

        creator = await self._resolve_creator(params.creator, params.mint, context)
        pdas = derive_bonding_curve_pdas(params.mint, user, creator)
        instructions.append(
            build_buy_instruction(
                user,
                params.mint,
                params.amount,
                pdas,
                slippage_bps=params.slippage_bps,
                expected_token_amount=params.expected_token_amount,
                include_fee_accounts=self.include_fee_accounts,
            )
        )
        return instructions

    async def _build_curve_sell(
        self,
        user: Pubkey,
        params: SellBondingCurveParams,
        context: BuildContext,
    ) -> List[Instruction]:
        creator = await self._resolve_creator(params.creator, params.mint, context)
        pdas = derive_bonding_curve_pdas(params.mint, user, creator)
        return [
            build_sell_instruction(
                user,
                params.mint,
                params.amount,
                params.min_sol_output,
                pdas,
                include_fee_accounts=self.include_fee_accounts,
            )
        ]

    # ─────────────────────────────────────────────────────────────────────────
    # AMM (delegated)
    # ─────────────────────────────────────────────────────────────────────────

    def _require_amm(self, op_id: str, context: BuildContext) -> AmmSdk:
        if context.amm_sdk is None:
            raise InstructionBuildError(f"Operation {op_id} needs an AMM SDK but none was provided", op_id)
        return context.amm_sdk

    async def _build_amm_buy(
        self,
        op_id: str,
        user: Pubkey,
        payer: Pubkey,
        params: BuyAmmParams,
        context: BuildContext,
    ) -> List[Instruction]:
        amm = self._require_amm(op_id, context)

        instructions = []
        if params.create_account:
            instructions.append(create_ata_idempotent(payer, user, params.token_mint))

        state = await amm.fetch_swap_state(params.pool_key, user)
        instructions.extend(
            await amm.build_instructions(state, params.amount, params.slippage_bps, TradeDirection.BUY)
        )
        return instructions

    async def _build_amm_sell(
        self,
        op_id: str,
        user: Pubkey,
        params: SellAmmParams,
        context: BuildContext,
    ) -> List[Instruction]:
        amm = self._require_amm(op_id, context)
        state = await amm.fetch_swap_state(params.pool_key, user)
        return list(
            await amm.build_instructions(state, params.amount, params.slippage_bps, TradeDirection.SELL)
        )

    def get_stats(self) -> dict:
        return {
            "built": self._built,
            "failed": self._failed,
            "cached_creators": len(self._creator_cache),
        }
