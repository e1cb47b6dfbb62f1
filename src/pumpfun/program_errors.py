"""
Pump Program Error Decoder
==========================
Maps the program's custom error codes to readable names so confirmation
and preflight failures can be reported with their meaning.
"""

from __future__ import annotations

import re
from typing import Optional

PROGRAM_ERRORS = {
    6000: ("NotAuthorized", "The given account is not authorized to execute this instruction"),
    6001: ("AlreadyInitialized", "The program is already initialized"),
    6002: ("TooMuchSolRequired", "Slippage: too much SOL required to buy the given amount of tokens"),
    6003: ("TooLittleSolReceived", "Slippage: too little SOL received to sell the given amount of tokens"),
    6004: ("MintDoesNotMatchBondingCurve", "The mint does not match the bonding curve"),
    6005: ("BondingCurveComplete", "The bonding curve has completed and liquidity migrated"),
    6006: ("BondingCurveNotComplete", "The bonding curve has not completed"),
    6007: ("NotInitialized", "The program is not initialized"),
    6008: ("WithdrawTooFrequent", "Withdraw too frequent"),
    6009: ("NewSizeShouldBeGreaterThanCurrentSize", "New size should be greater than current size"),
    6010: ("AccountTypeNotSupported", "Account type not supported"),
    6011: ("InitialRealTokenReservesShouldBeLessThanTokenTotalSupply",
           "Initial real token reserves should be less than token total supply"),
    6012: ("InitialVirtualTokenReservesShouldBeGreaterThanInitialRealTokenReserves",
           "Initial virtual token reserves should be greater than initial real token reserves"),
    6013: ("FeeBasisPointsGreaterThanMaximum", "Fee basis points greater than maximum"),
    6014: ("AllZerosWithdrawAuthority", "Withdraw authority cannot be set to System Program ID"),
    6015: ("PoolMigrationFeeShouldBeLessThanFinalRealSolReserves",
           "Pool migration fee should be less than final real SOL reserves"),
    6016: ("PoolMigrationFeeShouldBeGreaterThanCreatorFeePlusMaxMigrateFees",
           "Pool migration fee should be greater than creator fee plus max migrate fees"),
    6017: ("DisabledWithdraw", "Withdraw instruction is disabled"),
    6018: ("DisabledMigrate", "Migrate instruction is disabled"),
    6019: ("InvalidCreator", "Invalid creator pubkey"),
    6020: ("BuyZeroAmount", "Buy zero amount"),
    6021: ("NotEnoughTokensToBuy", "Not enough tokens to buy"),
    6022: ("SellZeroAmount", "Sell zero amount"),
    6023: ("NotEnoughTokensToSell", "Not enough tokens to sell"),
    6024: ("Overflow", "Overflow"),
    6025: ("Truncation", "Truncation"),
    6026: ("DivisionByZero", "Division by zero"),
    6027: ("NotEnoughRemainingAccounts", "Not enough remaining accounts"),
    6028: ("AllFeeRecipientsShouldBeNonZero", "All fee recipients should be non-zero"),
    6029: ("UnsortedNotUniqueFeeRecipients", "Fee recipients should be sorted and unique"),
    6030: ("CreatorShouldNotBeZero", "Creator should not be zero"),
    6031: ("StartTimeInThePast", "Start time is in the past"),
    6032: ("EndTimeInThePast", "End time is in the past"),
    6033: ("EndTimeBeforeStartTime", "End time is before start time"),
    6034: ("TimeRangeTooLarge", "Time range is too large"),
    6035: ("EndTimeBeforeCurrentDay", "End time is before current day"),
    6036: ("SupplyUpdateForFinishedRange", "Supply update for finished range"),
    6037: ("DayIndexAfterEndIndex", "Day index is after end index"),
    6038: ("DayInActiveRange", "Day is in active range"),
    6039: ("InvalidIncentiveMint", "Invalid incentive mint"),
}

# "Custom(6002)" from solders error reprs, "custom program error: 0x1772" from logs
_CUSTOM_DECIMAL = re.compile(r"Custom\((\d+)\)")
_CUSTOM_HEX = re.compile(r"custom program error: (0x[0-9a-fA-F]+)")


def extract_custom_error_code(text: str) -> Optional[int]:
    """Pull the first custom program error code out of an error or log string."""
    if not text:
        return None
    match = _CUSTOM_DECIMAL.search(text)
    if match:
        return int(match.group(1))
    match = _CUSTOM_HEX.search(text)
    if match:
        return int(match.group(1), 16)
    return None


def describe_program_error(text: str) -> str:
    """
    Append the decoded pump error name to a raw error string.

    Unknown codes (including other programs' codes) leave the text as-is.
    """
    code = extract_custom_error_code(text)
    if code is None or code not in PROGRAM_ERRORS:
        return text
    name, message = PROGRAM_ERRORS[code]
    return f"{text} [{code} {name}: {message}]"
