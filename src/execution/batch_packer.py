"""
Batch Packer
============
Pure partitioning of an operation list into transaction-sized batches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, TypeVar

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from src.execution.operations import Operation
from src.shared.execution.errors import MissingSender
from src.shared.system.logging import Logger

T = TypeVar("T")


def chunk(items: List[T], chunk_size: int) -> List[List[T]]:
    """
    Split items into contiguous slices of chunk_size (last may be shorter).

    Non-list input yields []. chunk_size <= 0 yields a single chunk
    holding every item.
    """
    if not isinstance(items, list):
        return []
    if chunk_size <= 0:
        return [items]
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


@dataclass(frozen=True)
class Batch:
    """Operations destined for one transaction, sharing one fee payer."""

    index: int
    operations: List[Operation]
    fee_payer: Keypair
    start: int = 0  # position of the first operation in the input list

    @property
    def fee_payer_pubkey(self) -> Pubkey:
        return self.fee_payer.pubkey()

    @property
    def senders(self) -> List[Keypair]:
        """Distinct sender keypairs in first-use order."""
        seen = {}
        for op in self.operations:
            seen.setdefault(op.sender.pubkey(), op.sender)
        return list(seen.values())

    @property
    def signers(self) -> List[Keypair]:
        """Every distinct sender plus the fee payer, no duplicates."""
        signers = self.senders
        if all(s.pubkey() != self.fee_payer_pubkey for s in signers):
            signers.append(self.fee_payer)
        return signers

    def __len__(self) -> int:
        return len(self.operations)


class BatchPacker:
    """
    Groups operations into Batches.

    Usage:
        batches = BatchPacker().pack(operations, fee_payer, max_ops_per_batch=3)
    """

    def __init__(self, logger: Any = Logger):
        self.logger = logger

    def pack(
        self,
        operations: Sequence[Operation],
        fee_payer: Optional[Keypair] = None,
        max_ops_per_batch: int = 0,
    ) -> List[Batch]:
        """
        Args:
            operations: Operations in submission order
            fee_payer: Pays for every batch; when None, each batch's first
                sender pays
            max_ops_per_batch: Batch cap; <= 0 puts everything in one batch

        Raises:
            MissingSender: an operation has no sender
        """
        for op in operations:
            if op.sender is None:
                raise MissingSender(op.id)

        batches = []
        start = 0
        for index, group in enumerate(chunk(list(operations), max_ops_per_batch)):
            if not group:
                continue
            payer = fee_payer if fee_payer is not None else group[0].sender
            batches.append(Batch(index=index, operations=group, fee_payer=payer, start=start))
            start += len(group)

        self.logger.debug(
            f"[BATCH] Packed {len(operations)} operations into {len(batches)} batch(es) "
            f"(cap {max_ops_per_batch})"
        )
        return batches
