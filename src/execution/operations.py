"""
Batch Operations
================
The closed set of operations the batch engine can execute, their typed
parameters, and the per-operation result returned to callers.

Responsibilities:
- Define OperationType and one frozen params record per type
- Parse raw operation payloads (JSON files, API bodies) into Operations
- Validate a payload list before anything is built
- Define BatchResult, the per-operation outcome
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from config.settings import Settings
from src.shared.execution.errors import InvalidOperation, UnknownOperationType
from src.shared.execution.execution_result import ErrorCode


# ═══════════════════════════════════════════════════════════════════════════════
# OPERATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

class OperationType(Enum):
    """Every operation kind the engine understands. Closed set."""
    CREATE_ACCOUNT = "create-account"
    TRANSFER = "transfer"
    SOL_TRANSFER = "sol-transfer"
    BUY_BONDING_CURVE = "buy-bonding-curve"
    SELL_BONDING_CURVE = "sell-bonding-curve"
    BUY_AMM = "buy-amm"
    SELL_AMM = "sell-amm"


# ═══════════════════════════════════════════════════════════════════════════════
# PARAMS
# ═══════════════════════════════════════════════════════════════════════════════

def _pubkey(params: Dict[str, Any], key: str, required: bool = True) -> Optional[Pubkey]:
    value = params.get(key)
    if value is None or value == "":
        if required:
            raise InvalidOperation(f"missing '{key}'")
        return None
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(str(value))
    except ValueError as e:
        raise InvalidOperation(f"'{key}' is not a valid public key: {value}") from e


def _int(params: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    value = params.get(key, default)
    if value is None:
        raise InvalidOperation(f"missing '{key}'")
    if isinstance(value, bool):
        raise InvalidOperation(f"'{key}' must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidOperation(f"'{key}' must be an integer, got {value!r}") from e
    if number != value and not isinstance(value, str):
        raise InvalidOperation(f"'{key}' must be a whole number, got {value!r}")
    if number < 0:
        raise InvalidOperation(f"'{key}' must be non-negative")
    return number


def _slippage_bps(params: Dict[str, Any], default: int) -> int:
    """slippageBps wins; a bare `slippage` is a percentage (1 = 1%)."""
    if params.get("slippageBps") is not None:
        return _int(params, "slippageBps")
    if params.get("slippage") is not None:
        try:
            pct = Decimal(str(params["slippage"]))
        except ArithmeticError as e:
            raise InvalidOperation(f"'slippage' must be numeric, got {params['slippage']!r}") from e
        if pct < 0:
            raise InvalidOperation("'slippage' must be non-negative")
        return int(pct * 100)
    return default


@dataclass(frozen=True)
class CreateAccountParams:
    mint: Pubkey
    owner: Pubkey
    include_wsol: bool = False

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "CreateAccountParams":
        return cls(
            mint=_pubkey(params, "mint"),
            owner=_pubkey(params, "owner"),
            include_wsol=bool(params.get("includeWsol", False)),
        )


@dataclass(frozen=True)
class TokenTransferParams:
    recipient: Pubkey
    mint: Pubkey
    amount: int  # base units
    create_account: bool = False

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "TokenTransferParams":
        return cls(
            recipient=_pubkey(params, "recipient"),
            mint=_pubkey(params, "mint"),
            amount=_int(params, "amount"),
            create_account=bool(params.get("createAccount", False)),
        )


@dataclass(frozen=True)
class SolTransferParams:
    recipient: Pubkey
    amount: Union[Decimal, float]  # SOL, not lamports

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "SolTransferParams":
        if params.get("amount") is None:
            raise InvalidOperation("missing 'amount'")
        try:
            amount = Decimal(str(params["amount"]))
        except ArithmeticError as e:
            raise InvalidOperation(f"'amount' must be numeric, got {params['amount']!r}") from e
        return cls(recipient=_pubkey(params, "recipient"), amount=amount)


@dataclass(frozen=True)
class BuyBondingCurveParams:
    mint: Pubkey
    amount: int  # lamports to spend
    slippage_bps: int = Settings.BONDING_CURVE_BUY_SLIPPAGE_BPS
    create_account: bool = False
    creator: Optional[Pubkey] = None
    expected_token_amount: int = Settings.BUY_EXPECTED_TOKEN_AMOUNT

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "BuyBondingCurveParams":
        return cls(
            mint=_pubkey(params, "mint"),
            amount=_int(params, "amount"),
            slippage_bps=_slippage_bps(params, Settings.BONDING_CURVE_BUY_SLIPPAGE_BPS),
            create_account=bool(params.get("createAccount", False)),
            creator=_pubkey(params, "creator", required=False),
            expected_token_amount=_int(
                params, "expectedTokenAmount", Settings.BUY_EXPECTED_TOKEN_AMOUNT
            ),
        )


@dataclass(frozen=True)
class SellBondingCurveParams:
    mint: Pubkey
    amount: int  # token base units
    min_sol_output: int = Settings.MIN_SOL_OUTPUT_LAMPORTS
    creator: Optional[Pubkey] = None

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "SellBondingCurveParams":
        return cls(
            mint=_pubkey(params, "mint"),
            amount=_int(params, "amount"),
            min_sol_output=_int(params, "minSolOutput", Settings.MIN_SOL_OUTPUT_LAMPORTS),
            creator=_pubkey(params, "creator", required=False),
        )


@dataclass(frozen=True)
class BuyAmmParams:
    pool_key: Pubkey
    amount: int  # quote lamports
    slippage_bps: int = Settings.AMM_SLIPPAGE_BPS
    create_account: bool = False
    token_mint: Optional[Pubkey] = None

    def __post_init__(self):
        if self.create_account and self.token_mint is None:
            raise InvalidOperation("tokenMint is required when createAccount is true")

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "BuyAmmParams":
        return cls(
            pool_key=_pubkey(params, "poolKey"),
            amount=_int(params, "amount"),
            slippage_bps=_slippage_bps(params, Settings.AMM_SLIPPAGE_BPS),
            create_account=bool(params.get("createAccount", False)),
            token_mint=_pubkey(params, "tokenMint", required=False),
        )


@dataclass(frozen=True)
class SellAmmParams:
    pool_key: Pubkey
    amount: int  # base token units
    slippage_bps: int = Settings.AMM_SLIPPAGE_BPS

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "SellAmmParams":
        return cls(
            pool_key=_pubkey(params, "poolKey"),
            amount=_int(params, "amount"),
            slippage_bps=_slippage_bps(params, Settings.AMM_SLIPPAGE_BPS),
        )


OperationParams = Union[
    CreateAccountParams,
    TokenTransferParams,
    SolTransferParams,
    BuyBondingCurveParams,
    SellBondingCurveParams,
    BuyAmmParams,
    SellAmmParams,
]

PARAMS_BY_TYPE = {
    OperationType.CREATE_ACCOUNT: CreateAccountParams,
    OperationType.TRANSFER: TokenTransferParams,
    OperationType.SOL_TRANSFER: SolTransferParams,
    OperationType.BUY_BONDING_CURVE: BuyBondingCurveParams,
    OperationType.SELL_BONDING_CURVE: SellBondingCurveParams,
    OperationType.BUY_AMM: BuyAmmParams,
    OperationType.SELL_AMM: SellAmmParams,
}


# ═══════════════════════════════════════════════════════════════════════════════
# OPERATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Operation:
    """
    One requested action. Immutable once built.

    The sender signs the operation's instructions; the batch fee payer may
    be a different wallet.
    """

    id: str
    type: OperationType
    params: OperationParams
    sender: Optional[Keypair] = None
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.type, OperationType):
            raise UnknownOperationType(self.type, self.id)
        expected = PARAMS_BY_TYPE[self.type]
        if not isinstance(self.params, expected):
            raise InvalidOperation(
                f"Operation {self.id}: {self.type.value} expects {expected.__name__}, "
                f"got {type(self.params).__name__}"
            )

    @property
    def sender_pubkey(self) -> Optional[Pubkey]:
        return self.sender.pubkey() if self.sender is not None else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], sender: Optional[Keypair] = None) -> "Operation":
        """
        Parse a raw payload ``{id, type, params, description?}``.

        Raises:
            InvalidOperation: missing fields or bad params
            UnknownOperationType: type outside OperationType
        """
        op_id = data.get("id")
        raw_type = data.get("type")
        params = data.get("params")
        if not op_id or not raw_type or not isinstance(params, dict):
            raise InvalidOperation("Missing required fields (id, type, params)")

        try:
            op_type = OperationType(raw_type)
        except ValueError:
            raise UnknownOperationType(raw_type, str(op_id)) from None

        try:
            typed = PARAMS_BY_TYPE[op_type].from_dict(params)
        except InvalidOperation as e:
            raise InvalidOperation(f"Operation {op_id}: invalid {op_type.value} params: {e}") from e

        return cls(
            id=str(op_id),
            type=op_type,
            params=typed,
            sender=sender,
            description=data.get("description"),
        )


def validate_operations(payloads: List[Dict[str, Any]]) -> Tuple[bool, List[str]]:
    """
    Validate raw operation payloads before building anything.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors: List[str] = []

    if not isinstance(payloads, list) or not payloads:
        return False, ["Operations must be a non-empty list"]

    seen_ids: Dict[str, int] = {}
    for index, payload in enumerate(payloads):
        if not isinstance(payload, dict):
            errors.append(f"Operation {index}: must be an object")
            continue

        op_id = payload.get("id")
        if op_id is not None:
            if op_id in seen_ids:
                errors.append(
                    f"Operation {index}: Duplicate ID '{op_id}' (first seen at {seen_ids[op_id]})"
                )
                continue
            seen_ids[op_id] = index

        try:
            Operation.from_dict(payload)
        except UnknownOperationType as e:
            errors.append(f"Operation {index}: Invalid type '{e.op_type}'")
        except InvalidOperation as e:
            errors.append(f"Operation {index}: {e}")

    return len(errors) == 0, errors


# ═══════════════════════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchResult:
    """Outcome of one operation. Operations in the same batch share a signature."""

    operation_id: str
    type: str
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    batch_index: Optional[int] = None
    last_valid_block_height: Optional[int] = None  # of the signature's blockhash

    @classmethod
    def succeeded(cls, op: Operation, signature: str, batch_index: Optional[int] = None) -> "BatchResult":
        return cls(
            operation_id=op.id,
            type=_type_name(op),
            success=True,
            signature=signature,
            batch_index=batch_index,
        )

    @classmethod
    def failed(
        cls,
        op: Operation,
        error: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        batch_index: Optional[int] = None,
        signature: Optional[str] = None,
        last_valid_block_height: Optional[int] = None,
    ) -> "BatchResult":
        return cls(
            operation_id=op.id,
            type=_type_name(op),
            success=False,
            signature=signature,
            error=error,
            error_code=error_code,
            batch_index=batch_index,
            last_valid_block_height=last_valid_block_height,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape returned to CLIs and services."""
        out: Dict[str, Any] = {
            "operationId": self.operation_id,
            "type": self.type,
            "success": self.success,
        }
        if self.signature:
            out["signature"] = self.signature
        if self.error:
            out["error"] = self.error
            out["errorCode"] = self.error_code.value if self.error_code else None
        return out


def _type_name(op: Any) -> str:
    op_type = getattr(op, "type", None)
    return op_type.value if isinstance(op_type, OperationType) else str(op_type)
