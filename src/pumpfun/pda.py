"""
PDA Resolver
============
Deterministic program-derived addresses for the pump.fun program.

Every function is pure: the same inputs always produce the same
address, and nothing here touches the network except
fetch_bonding_curve_creator(), which reads the creator stored in the
bonding-curve account.

Responsibilities:
- Derive the bonding-curve, creator-vault and volume-accumulator PDAs
- Derive the fee_config PDA under the fee program
- Derive associated token accounts for the curve and the user
- Bundle everything a buy/sell instruction needs into BondingCurvePdas
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from src.pumpfun.constants import (
    PUMP_PROGRAM_ID,
    FEE_PROGRAM_ID,
    GLOBAL_SEED,
    BONDING_CURVE_SEED,
    CREATOR_VAULT_SEED,
    GLOBAL_VOLUME_ACCUMULATOR_SEED,
    USER_VOLUME_ACCUMULATOR_SEED,
    EVENT_AUTHORITY_SEED,
    FEE_CONFIG_SEED,
    FEE_CONFIG_KEY,
    BONDING_CURVE_CREATOR_OFFSET,
    PUBKEY_LENGTH,
)
from src.shared.system.logging import Logger


ProgramAddress = Tuple[Pubkey, int]


# ═══════════════════════════════════════════════════════════════════════════════
# SEED DERIVATIONS
# ═══════════════════════════════════════════════════════════════════════════════

def global_account() -> ProgramAddress:
    return Pubkey.find_program_address([GLOBAL_SEED], PUMP_PROGRAM_ID)


def bonding_curve(mint: Pubkey) -> ProgramAddress:
    return Pubkey.find_program_address([BONDING_CURVE_SEED, bytes(mint)], PUMP_PROGRAM_ID)


def creator_vault(wallet: Pubkey) -> ProgramAddress:
    return Pubkey.find_program_address([CREATOR_VAULT_SEED, bytes(wallet)], PUMP_PROGRAM_ID)


def global_volume_accumulator() -> ProgramAddress:
    return Pubkey.find_program_address([GLOBAL_VOLUME_ACCUMULATOR_SEED], PUMP_PROGRAM_ID)


def user_volume_accumulator(user: Pubkey) -> ProgramAddress:
    return Pubkey.find_program_address([USER_VOLUME_ACCUMULATOR_SEED, bytes(user)], PUMP_PROGRAM_ID)


def event_authority() -> ProgramAddress:
    return Pubkey.find_program_address([EVENT_AUTHORITY_SEED], PUMP_PROGRAM_ID)


def fee_config() -> ProgramAddress:
    """fee_config lives under the fee program, not the pump program."""
    return Pubkey.find_program_address([FEE_CONFIG_SEED, FEE_CONFIG_KEY], FEE_PROGRAM_ID)


def associated_bonding_curve(curve: Pubkey, mint: Pubkey) -> Pubkey:
    """Token account holding the curve's unsold supply."""
    return get_associated_token_address(curve, mint)


def associated_user(user: Pubkey, mint: Pubkey) -> Pubkey:
    return get_associated_token_address(user, mint)


# ═══════════════════════════════════════════════════════════════════════════════
# BUNDLED PDAS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BondingCurvePdas:
    """Every derived account a bonding-curve buy or sell references."""

    global_account: Pubkey
    bonding_curve: Pubkey
    associated_bonding_curve: Pubkey
    associated_user: Pubkey
    creator_vault: Pubkey
    event_authority: Pubkey
    global_volume_accumulator: Pubkey
    user_volume_accumulator: Pubkey
    fee_config: Pubkey


def derive_bonding_curve_pdas(
    mint: Pubkey,
    user: Pubkey,
    creator: Optional[Pubkey] = None,
) -> BondingCurvePdas:
    """
    Resolve all PDAs for a trade of `mint` by `user`.

    Args:
        mint: Token mint traded on the curve
        user: Wallet buying or selling
        creator: Token creator; the creator vault is keyed on it. Falls
            back to the user wallet when unknown.

    Returns:
        BondingCurvePdas
    """
    curve, _ = bonding_curve(mint)
    return BondingCurvePdas(
        global_account=global_account()[0],
        bonding_curve=curve,
        associated_bonding_curve=associated_bonding_curve(curve, mint),
        associated_user=associated_user(user, mint),
        creator_vault=creator_vault(creator if creator is not None else user)[0],
        event_authority=event_authority()[0],
        global_volume_accumulator=global_volume_accumulator()[0],
        user_volume_accumulator=user_volume_accumulator(user)[0],
        fee_config=fee_config()[0],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# ON-CHAIN LOOKUP
# ═══════════════════════════════════════════════════════════════════════════════

def decode_bonding_curve_creator(data: bytes) -> Optional[Pubkey]:
    """Read the creator pubkey out of raw bonding-curve account data."""
    end = BONDING_CURVE_CREATOR_OFFSET + PUBKEY_LENGTH
    if data is None or len(data) < end:
        return None
    return Pubkey.from_bytes(bytes(data[BONDING_CURVE_CREATOR_OFFSET:end]))


async def fetch_bonding_curve_creator(
    connection: Any,
    mint: Pubkey,
    logger: Any = Logger,
) -> Optional[Pubkey]:
    """
    Look up the creator recorded in the mint's bonding-curve account.

    Returns None when the account does not exist or is too short to
    hold a creator (pre-creator curves).
    """
    curve, _ = bonding_curve(mint)
    resp = await connection.get_account_info(curve)
    account = getattr(resp, "value", None)
    if account is None:
        logger.debug(f"[PDA] Bonding curve {curve} not found for mint {mint}")
        return None

    creator = decode_bonding_curve_creator(account.data)
    if creator is None:
        logger.debug(f"[PDA] Bonding curve {curve} has no creator field")
    return creator
