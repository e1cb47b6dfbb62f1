"""
Token Account & Transfer Instructions
=====================================
Plain SPL / system-program instructions shared by the operation builder.
"""

from __future__ import annotations

from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from solders.system_program import transfer as system_transfer, TransferParams as SystemTransferParams
from spl.token.instructions import (
    get_associated_token_address,
    transfer as spl_transfer,
    TransferParams as SplTransferParams,
)

from src.pumpfun.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)

# CreateIdempotent variant of the associated-token-account program
CREATE_IDEMPOTENT = bytes([1])


def create_ata_idempotent(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    """
    Create the (owner, mint) associated token account if it does not exist.

    The idempotent variant succeeds when the account is already there, so
    it is safe to prepend to any batch.
    """
    ata = get_associated_token_address(owner, mint)
    return Instruction(
        program_id=ASSOCIATED_TOKEN_PROGRAM_ID,
        data=CREATE_IDEMPOTENT,
        accounts=[
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=ata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )


def token_transfer(sender: Pubkey, recipient: Pubkey, mint: Pubkey, amount: int) -> Instruction:
    """SPL transfer between the sender's and recipient's associated accounts."""
    return spl_transfer(
        SplTransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=get_associated_token_address(sender, mint),
            dest=get_associated_token_address(recipient, mint),
            owner=sender,
            amount=amount,
        )
    )


def sol_transfer(sender: Pubkey, recipient: Pubkey, lamports: int) -> Instruction:
    return system_transfer(
        SystemTransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports)
    )
