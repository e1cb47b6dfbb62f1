"""
Instruction Encoder
===================
Fixed-layout binary payloads and protocol-ordered account lists for the
pump.fun bonding-curve buy and sell instructions.

Layouts (little-endian):

    Buy  (25 bytes)                      Sell (24 bytes)
    ---------------------------------    ---------------------------------
    [0:8]   discriminator                [0:8]   discriminator
    [8:16]  u64 token amount estimate    [8:16]  u64 token amount
    [16:24] u64 max SOL cost (lamports)  [16:24] u64 min SOL output
    [24]    u8  track volume flag

The program reads accounts by position. The order below mirrors the IDL
exactly and must not be rearranged.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List

from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey

from config.settings import Settings
from src.pumpfun.constants import (
    PUMP_PROGRAM_ID,
    FEE_PROGRAM_ID,
    FEE_RECIPIENT,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    BUY_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
)
from src.pumpfun.pda import BondingCurvePdas
from src.shared.execution.errors import InstructionEncodingError


U64_MAX = 2**64 - 1
BPS_DENOMINATOR = 10_000

BUY_DATA_LENGTH = 25
SELL_DATA_LENGTH = 24


def _check_u64(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InstructionEncodingError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise InstructionEncodingError(f"{name} {value} does not fit in u64")
    return value


def max_sol_cost(sol_amount: int, slippage_bps: int) -> int:
    """Upper bound on lamports the buyer accepts to pay."""
    if slippage_bps < 0:
        raise InstructionEncodingError(f"slippage_bps must be non-negative, got {slippage_bps}")
    return sol_amount * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR


# ═══════════════════════════════════════════════════════════════════════════════
# ARGUMENT SERIALIZERS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BuyArgs:
    """Buy argument block following the discriminator."""

    amount: int          # offset 8,  u64
    max_sol_cost: int    # offset 16, u64
    track_volume: bool = True  # offset 24, u8

    def serialize(self) -> bytes:
        data = BUY_DISCRIMINATOR + struct.pack(
            "<QQB",
            _check_u64("amount", self.amount),
            _check_u64("max_sol_cost", self.max_sol_cost),
            1 if self.track_volume else 0,
        )
        if len(data) != BUY_DATA_LENGTH:
            raise InstructionEncodingError(f"Buy data is {len(data)} bytes, expected {BUY_DATA_LENGTH}")
        return data


@dataclass(frozen=True)
class SellArgs:
    """Sell argument block following the discriminator."""

    amount: int          # offset 8,  u64
    min_sol_output: int  # offset 16, u64

    def serialize(self) -> bytes:
        data = SELL_DISCRIMINATOR + struct.pack(
            "<QQ",
            _check_u64("amount", self.amount),
            _check_u64("min_sol_output", self.min_sol_output),
        )
        if len(data) != SELL_DATA_LENGTH:
            raise InstructionEncodingError(f"Sell data is {len(data)} bytes, expected {SELL_DATA_LENGTH}")
        return data


# ═══════════════════════════════════════════════════════════════════════════════
# INSTRUCTION BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════

def _fee_accounts(pdas: BondingCurvePdas) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=pdas.fee_config, is_signer=False, is_writable=False),
        AccountMeta(pubkey=FEE_PROGRAM_ID, is_signer=False, is_writable=False),
    ]


def build_buy_instruction(
    user: Pubkey,
    mint: Pubkey,
    sol_amount: int,
    pdas: BondingCurvePdas,
    slippage_bps: int = Settings.BONDING_CURVE_BUY_SLIPPAGE_BPS,
    expected_token_amount: int = Settings.BUY_EXPECTED_TOKEN_AMOUNT,
    include_fee_accounts: bool = Settings.INCLUDE_FEE_ACCOUNTS,
) -> Instruction:
    """
    Build a bonding-curve buy.

    Args:
        user: Buyer wallet (signer)
        mint: Token mint
        sol_amount: Lamports to spend
        pdas: Resolved PDAs for (mint, user)
        slippage_bps: Ceiling on extra SOL paid, in basis points
        expected_token_amount: Token amount estimate sent to the program
        include_fee_accounts: Append fee_config/fee_program (current IDL)

    Returns:
        Instruction with a 25-byte payload
    """
    args = BuyArgs(
        amount=expected_token_amount,
        max_sol_cost=max_sol_cost(_check_u64("sol_amount", sol_amount), slippage_bps),
    )

    accounts = [
        AccountMeta(pubkey=pdas.global_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=FEE_RECIPIENT, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.associated_bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.associated_user, is_signer=False, is_writable=True),
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.creator_vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.event_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.global_volume_accumulator, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.user_volume_accumulator, is_signer=False, is_writable=True),
    ]
    if include_fee_accounts:
        accounts.extend(_fee_accounts(pdas))

    return Instruction(program_id=PUMP_PROGRAM_ID, data=args.serialize(), accounts=accounts)


def build_sell_instruction(
    user: Pubkey,
    mint: Pubkey,
    token_amount: int,
    min_sol_output: int,
    pdas: BondingCurvePdas,
    include_fee_accounts: bool = Settings.INCLUDE_FEE_ACCOUNTS,
) -> Instruction:
    """
    Build a bonding-curve sell.

    Note the sell order differs from buy: creator_vault precedes the token
    program, and there are no volume accumulators.
    """
    args = SellArgs(amount=token_amount, min_sol_output=min_sol_output)

    accounts = [
        AccountMeta(pubkey=pdas.global_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=FEE_RECIPIENT, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.associated_bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(pubkey=pdas.associated_user, is_signer=False, is_writable=True),
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.creator_vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=pdas.event_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    if include_fee_accounts:
        accounts.extend(_fee_accounts(pdas))

    return Instruction(program_id=PUMP_PROGRAM_ID, data=args.serialize(), accounts=accounts)
