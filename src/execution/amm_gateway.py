"""
AMM SDK Boundary
================
Structural interface for the pump AMM SDK.

Pool state fetching, constant-product pricing and the AMM's account
layout all belong to the SDK; the batch engine only asks it for
instructions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Protocol, runtime_checkable

from solders.instruction import Instruction
from solders.pubkey import Pubkey


class TradeDirection(Enum):
    """Direction of an AMM swap."""
    BUY = "BUY"    # spend quote (SOL), receive base
    SELL = "SELL"  # spend base, receive quote


# ═══════════════════════════════════════════════════════════════════════════════
# PROTOCOL DEFINITION (Structural Typing)
# ═══════════════════════════════════════════════════════════════════════════════

@runtime_checkable
class AmmSdk(Protocol):
    """
    Protocol for AMM SDK adapters.

    Any class implementing these methods can back buy-amm / sell-amm.
    """

    async def fetch_swap_state(self, pool: Pubkey, user: Pubkey) -> Any:
        """Read the pool and user token accounts needed for a swap."""
        ...

    async def build_instructions(
        self,
        state: Any,
        amount: int,
        slippage_bps: int,
        direction: TradeDirection,
    ) -> List[Instruction]:
        """
        Produce swap instructions.

        BUY treats `amount` as quote lamports in; SELL treats it as base
        units in.
        """
        ...
