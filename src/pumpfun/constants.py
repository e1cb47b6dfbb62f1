"""
Pump.fun Protocol Constants
===========================
Program ids, PDA seeds and instruction discriminators.

Every value here is copied from the on-chain program IDL. A wrong byte
produces a valid-looking but different address or instruction, which only
fails at submission time, so nothing in this module is derived.
"""

from solders.pubkey import Pubkey


# ═══════════════════════════════════════════════════════════════════════════════
# PROGRAM IDS
# ═══════════════════════════════════════════════════════════════════════════════

PUMP_PROGRAM_ID = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
PUMP_AMM_PROGRAM_ID = Pubkey.from_string("pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA")
FEE_PROGRAM_ID = Pubkey.from_string("pfeeUxB6jkeY1Hxd7CsFCAjcbHA9rWtchMGdZ6VojVZ")

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")

WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")


# ═══════════════════════════════════════════════════════════════════════════════
# FIXED ACCOUNTS
# ═══════════════════════════════════════════════════════════════════════════════

FEE_RECIPIENT = Pubkey.from_string("68yFSZxzLWJXkxxRGydZ63C6mHx1NLEDWmwN9Lb5yySg")
GLOBAL_ACCOUNT = Pubkey.from_string("4wTV1YmiEkRvAtNtsSGPtUrqRYQMe5SKy2uB4Jjaxnjf")
EVENT_AUTHORITY = Pubkey.from_string("Ce6TQqeHC9p8KetsN6JsjHK7UTZk7nasjjnr7XxXp9F1")
GLOBAL_VOLUME_ACCUMULATOR = Pubkey.from_string("Hq2wp8uJ9jCPsYgNHex8RtqdvMPfVGoYwjvF1ATiwn2Y")


# ═══════════════════════════════════════════════════════════════════════════════
# PDA SEEDS
# ═══════════════════════════════════════════════════════════════════════════════

GLOBAL_SEED = b"global"
BONDING_CURVE_SEED = b"bonding-curve"
CREATOR_VAULT_SEED = b"creator-vault"
GLOBAL_VOLUME_ACCUMULATOR_SEED = b"global_volume_accumulator"
USER_VOLUME_ACCUMULATOR_SEED = b"user_volume_accumulator"
EVENT_AUTHORITY_SEED = b"__event_authority"
FEE_CONFIG_SEED = b"fee_config"

# Second fee_config seed (the pump program id as raw bytes in the fee IDL)
FEE_CONFIG_KEY = bytes([
    1, 86, 224, 246, 147, 102, 90, 207, 68, 219, 21, 104, 191, 23, 91, 170,
    81, 137, 203, 151, 245, 210, 255, 59, 101, 93, 43, 182, 253, 109, 24, 176,
])


# ═══════════════════════════════════════════════════════════════════════════════
# DISCRIMINATORS
# ═══════════════════════════════════════════════════════════════════════════════

BUY_DISCRIMINATOR = bytes([102, 6, 61, 18, 1, 218, 235, 234])
SELL_DISCRIMINATOR = bytes([51, 230, 133, 164, 1, 127, 131, 173])
BONDING_CURVE_ACCOUNT_DISCRIMINATOR = bytes([23, 183, 248, 55, 96, 216, 172, 96])


# ═══════════════════════════════════════════════════════════════════════════════
# ACCOUNT LAYOUT
# ═══════════════════════════════════════════════════════════════════════════════

# BondingCurve: disc(8) + 5 x u64 reserves/supply (40) + complete flag (1)
BONDING_CURVE_CREATOR_OFFSET = 49
PUBKEY_LENGTH = 32
