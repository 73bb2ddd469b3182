"""
Pending-transfer ledger — correlation between marketplace settlement
events and the token transfer they cause.

A sale or bid acceptance is emitted by the marketplace contract; the
resulting Transfer is emitted by the token contract, later in the same
transaction, with nothing linking the two. The settlement handler leaves
a breadcrumb keyed by (txHash, tokenAddress, tokenId); the transfer
handler reads it once and deletes it.

Breadcrumbs live for one transaction. TransactionScope records the ones
still outstanding so the dispatcher can sweep them when the transaction
closes.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from indexer.models import PendingTransfer
from indexer.services.identity import pending_transfer_id
from indexer.services.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class TransactionScope:
    """Unit of work for one on-chain transaction."""

    tx_hash: str
    block_number: int
    timestamp: int
    outstanding: set[str] = field(default_factory=set)


class PendingTransferLedger:
    """put / get / delete of breadcrumbs, optionally tracked by a TransactionScope."""

    def __init__(self, store: EntityStore, scope: Optional[TransactionScope] = None):
        self.store = store
        self.scope = scope

    def _track(self, tx_hash: str, key: str, outstanding: bool) -> None:
        if self.scope is None or self.scope.tx_hash != tx_hash:
            return
        if outstanding:
            self.scope.outstanding.add(key)
        else:
            self.scope.outstanding.discard(key)

    async def put(
        self,
        tx_hash: str,
        token_address: str,
        token_id: int,
        kind: str,
        created_at: int,
        listing_id: Optional[str] = None,
        bid_id: Optional[str] = None,
    ) -> PendingTransfer:
        if listing_id is not None and bid_id is not None:
            raise ValueError("a pending transfer references a listing or a bid, not both")

        key = pending_transfer_id(tx_hash, token_address, token_id)
        record = await self.store.create(
            PendingTransfer,
            key,
            transaction_hash=tx_hash.lower(),
            token_address=token_address.lower(),
            token_id=token_id,
            transfer_type=kind,
            listing_id=listing_id,
            bid_id=bid_id,
            created_at=created_at,
        )
        self._track(tx_hash.lower(), key, outstanding=True)
        logger.debug("Pending transfer %s recorded (%s)", key, kind)
        return record

    async def get(self, tx_hash: str, token_address: str, token_id: int) -> Optional[PendingTransfer]:
        return await self.store.load(
            PendingTransfer, pending_transfer_id(tx_hash, token_address, token_id)
        )

    async def delete(self, tx_hash: str, token_address: str, token_id: int) -> bool:
        key = pending_transfer_id(tx_hash, token_address, token_id)
        removed = await self.store.remove(PendingTransfer, key)
        self._track(tx_hash.lower(), key, outstanding=False)
        return removed

    async def consume(self, tx_hash: str, token_address: str, token_id: int) -> Optional[PendingTransfer]:
        """Read a breadcrumb and delete it; None when there is none."""
        record = await self.get(tx_hash, token_address, token_id)
        if record is None:
            return None
        await self.delete(tx_hash, token_address, token_id)
        return record

    async def sweep(self, scope: TransactionScope) -> int:
        """Delete breadcrumbs that no transfer consumed during `scope`."""
        swept = 0
        for key in sorted(scope.outstanding):
            if await self.store.remove(PendingTransfer, key):
                swept += 1
                logger.warning(
                    "Pending transfer %s was never consumed in tx %s, discarding",
                    key,
                    scope.tx_hash,
                )
        scope.outstanding.clear()
        return swept
