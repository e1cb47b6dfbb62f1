"""
Transaction Limit Estimator
===========================
Conservative size / account-count estimate for a candidate instruction
set, computed locally with no RPC calls.

The estimate is deliberately pessimistic: it charges a full 4-byte
length prefix per instruction and a flat 100 bytes for the header,
blockhash and compact-array framing, so anything reported as fitting
will also fit the real serializer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

MAX_TRANSACTION_SIZE_BYTES = 1232
MAX_ACCOUNTS_PER_TRANSACTION = 64

SIGNATURE_SIZE = 64
ACCOUNT_KEY_SIZE = 32
INSTRUCTION_OVERHEAD_BYTES = 4
ACCOUNT_INDEX_SIZE = 1
MESSAGE_OVERHEAD_BYTES = 100

Signer = Union[Keypair, Pubkey]


@dataclass(frozen=True)
class TransactionLimits:
    """Estimate for one candidate transaction."""

    can_fit: bool
    estimated_size_bytes: int
    unique_account_count: int
    reasons: List[str] = field(default_factory=list)


def _signer_key(signer: Signer) -> Pubkey:
    return signer.pubkey() if isinstance(signer, Keypair) else signer


def unique_signers(signers: Iterable[Signer]) -> List[Pubkey]:
    """Distinct signer pubkeys, first occurrence order."""
    seen = {}
    for signer in signers:
        seen.setdefault(_signer_key(signer), None)
    return list(seen)


def estimate_transaction_limits(
    instructions: Sequence[Instruction],
    signers: Iterable[Signer],
) -> TransactionLimits:
    """
    Estimate serialized size and unique account count.

    Args:
        instructions: Candidate instructions, in order
        signers: Keypairs or pubkeys that will sign (fee payer included)

    Returns:
        TransactionLimits; `reasons` lists every violated limit
    """
    signer_keys = unique_signers(signers)

    accounts = set(signer_keys)
    for ix in instructions:
        accounts.update(meta.pubkey for meta in ix.accounts)
        accounts.add(ix.program_id)
    account_count = len(accounts)

    estimated_size = (
        len(signer_keys) * SIGNATURE_SIZE
        + account_count * ACCOUNT_KEY_SIZE
        + sum(len(bytes(ix.data)) + INSTRUCTION_OVERHEAD_BYTES for ix in instructions)
        + sum(len(ix.accounts) * ACCOUNT_INDEX_SIZE for ix in instructions)
        + MESSAGE_OVERHEAD_BYTES
    )

    reasons = []
    if estimated_size > MAX_TRANSACTION_SIZE_BYTES:
        reasons.append(
            f"Estimated size {estimated_size} bytes exceeds limit {MAX_TRANSACTION_SIZE_BYTES} bytes"
        )
    if account_count > MAX_ACCOUNTS_PER_TRANSACTION:
        reasons.append(f"Account count {account_count} exceeds limit {MAX_ACCOUNTS_PER_TRANSACTION}")

    return TransactionLimits(
        can_fit=not reasons,
        estimated_size_bytes=estimated_size,
        unique_account_count=account_count,
        reasons=reasons,
    )
