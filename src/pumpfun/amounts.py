"""
Lamport / SOL conversions.
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Union

LAMPORTS_PER_SOL = 1_000_000_000


def sol_to_lamports(sol: Union[int, float, str, Decimal]) -> int:
    """
    Convert SOL to lamports, rounding down.

    Decimal keeps values like 0.1 from landing one lamport short.
    """
    value = Decimal(str(sol))
    if not value.is_finite():
        raise ValueError("SOL value must be a finite number")
    if value < 0:
        raise ValueError("SOL value must be non-negative")
    return int((value * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_FLOOR))


def lamports_to_sol(lamports: int, precision: int = 9) -> float:
    if lamports < 0:
        raise ValueError("Lamports value must be non-negative")
    if not isinstance(lamports, int):
        raise ValueError("Lamports value must be an integer")
    return round(lamports / LAMPORTS_PER_SOL, min(precision, 9))


def format_lamports_as_sol(lamports: int, precision: int = 4) -> str:
    return f"{lamports_to_sol(lamports, precision):.{precision}f} SOL"
