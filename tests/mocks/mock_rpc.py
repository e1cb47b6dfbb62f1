"""
Mock RPC Client
===============
Fake Solana AsyncClient for testing without network calls.

Responses mirror the solana-py / solders shapes the engine reads
(``resp.value.blockhash``, ``resp.value.data``, ``resp.value[0].err``).
"""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction


class MockRpcClient:
    """
    Mock Solana RPC client.

    Returns preset responses for the calls the batch engine makes, and
    records every raw transaction it is sent.

    Usage:
        client = MockRpcClient()
        client.set_account_data(curve_pda, raw_bytes)
        client.queue_send_error(httpx.ConnectError("reset"))
        result = await submitter.submit_and_confirm(ixs, signers, payer)
    """

    def __init__(self):
        self._accounts: Dict[Pubkey, bytes] = {}
        self._block_height = 100000
        self._blockhash = Hash(bytes([7] * 32))
        self.call_count = 0

        # Scripted failures, consumed one per call
        self.send_errors: List[Exception] = []
        self.confirm_errors: List[Exception] = []

        # Error reported in the confirmed status (None = success)
        self.status_err: Any = None

        # Signatures the cluster "knows" even if the send call errored
        self.known_signatures: set = set()

        # Sends succeed but never reach the cluster
        self.drop_sent = False

        # Blocks produced since the latest blockhash was handed out
        self.blocks_elapsed = 0

        self.sent: List[bytes] = []
        self.account_requests: List[Pubkey] = []

    # ─────────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────────

    def set_account_data(self, pubkey: Pubkey, data: bytes):
        """Set raw account data for a pubkey."""
        self._accounts[pubkey] = data

    def queue_send_error(self, exc: Exception):
        self.send_errors.append(exc)

    def queue_confirm_error(self, exc: Exception):
        self.confirm_errors.append(exc)

    @property
    def sent_signatures(self) -> List[str]:
        return [str(VersionedTransaction.from_bytes(raw).signatures[0]) for raw in self.sent]

    # ─────────────────────────────────────────────────────────────────────────
    # AsyncClient surface
    # ─────────────────────────────────────────────────────────────────────────

    async def get_latest_blockhash(self, commitment: Any = None) -> SimpleNamespace:
        self.call_count += 1
        return SimpleNamespace(
            value=SimpleNamespace(
                blockhash=self._blockhash,
                last_valid_block_height=self._block_height + 150,
            )
        )

    async def get_account_info(self, pubkey: Pubkey, *args, **kwargs) -> SimpleNamespace:
        self.call_count += 1
        self.account_requests.append(pubkey)
        if pubkey not in self._accounts:
            return SimpleNamespace(value=None)
        return SimpleNamespace(value=SimpleNamespace(data=self._accounts[pubkey], lamports=1_000_000))

    async def send_raw_transaction(self, txn: bytes, opts: Any = None) -> SimpleNamespace:
        self.call_count += 1
        self.sent.append(bytes(txn))
        signature = VersionedTransaction.from_bytes(bytes(txn)).signatures[0]
        if self.send_errors:
            raise self.send_errors.pop(0)
        if not self.drop_sent:
            self.known_signatures.add(str(signature))
        return SimpleNamespace(value=signature)

    async def confirm_transaction(
        self,
        tx_sig: Signature,
        commitment: Any = None,
        sleep_seconds: float = 0.5,
        last_valid_block_height: Optional[int] = None,
    ) -> SimpleNamespace:
        self.call_count += 1
        if self.confirm_errors:
            raise self.confirm_errors.pop(0)
        return SimpleNamespace(value=[SimpleNamespace(err=self.status_err, slot=self._block_height)])

    async def get_signature_statuses(self, signatures: List[Signature], *args, **kwargs) -> SimpleNamespace:
        self.call_count += 1
        return SimpleNamespace(
            value=[
                SimpleNamespace(err=self.status_err) if str(sig) in self.known_signatures else None
                for sig in signatures
            ]
        )

    async def get_block_height(self, commitment: Any = None) -> SimpleNamespace:
        self.call_count += 1
        return SimpleNamespace(value=self._block_height + self.blocks_elapsed)

    async def is_connected(self) -> bool:
        return True
