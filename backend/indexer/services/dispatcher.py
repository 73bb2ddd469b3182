"""
Event dispatcher — routes delivered logs to handlers, one at a time.

Per log:
  decode envelope -> route by (emitting address, event name) ->
  decode params -> rotate the transaction scope -> run the handler and
  record the log as processed inside one database transaction.

Decoding happens before any database access, so a malformed log writes
nothing. A handler failure rolls the whole log back and propagates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from indexer.core.config import Settings, settings
from indexer.models import Collection, ProcessedEvent
from indexer.models.enums import TokenStandard
from indexer.schemas.events import (
    BidAccepted,
    BidCancelled,
    BidOutbid,
    BidPlaced,
    CollectionCreated,
    ERC1155TransferBatch,
    ERC1155TransferSingle,
    ERC6909Transfer,
    ERC721Transfer,
    EventContext,
    EventParams,
    ListingCancelled,
    ListingCreated,
    ListingSold,
    OperatorSet,
    OwnershipTransferred,
    decode_log,
    decode_params,
)
from indexer.services import marketplace, registrars, transfers
from indexer.services.context import HandlerContext
from indexer.services.identity import event_id
from indexer.services.pending_ledger import PendingTransferLedger, TransactionScope
from indexer.services.store import EntityStore
from indexer.services.watchers import InMemoryWatcherRegistry, WatcherRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventHandler:
    schema: type[EventParams]
    func: Callable[[HandlerContext, Any], Awaitable[Any]]


HandlerSet = dict[str, EventHandler]

NFT721_FACTORY = "NFT721Factory"
NFT1155_FACTORY = "NFT1155Factory"
NFT6909_FACTORY = "NFT6909Factory"
MARKETPLACE = "NFTMarketplace"

_OWNERSHIP = EventHandler(OwnershipTransferred, transfers.handle_ownership_transferred)

HANDLER_SETS: dict[str, HandlerSet] = {
    # Static sources
    NFT721_FACTORY: {
        "NFT721Created": EventHandler(CollectionCreated, registrars.handle_nft721_created),
    },
    NFT1155_FACTORY: {
        "NFT1155Created": EventHandler(CollectionCreated, registrars.handle_nft1155_created),
    },
    NFT6909_FACTORY: {
        "NFT6909Created": EventHandler(CollectionCreated, registrars.handle_nft6909_created),
    },
    MARKETPLACE: {
        "ListingCreated": EventHandler(ListingCreated, marketplace.handle_listing_created),
        "ListingCancelled": EventHandler(ListingCancelled, marketplace.handle_listing_cancelled),
        "ListingSold": EventHandler(ListingSold, marketplace.handle_listing_sold),
        "BidPlaced": EventHandler(BidPlaced, marketplace.handle_bid_placed),
        "BidOutbid": EventHandler(BidOutbid, marketplace.handle_bid_outbid),
        "BidCancelled": EventHandler(BidCancelled, marketplace.handle_bid_cancelled),
        "BidAccepted": EventHandler(BidAccepted, marketplace.handle_bid_accepted),
    },
    # Dynamic watchers, registered per collection under its token standard
    TokenStandard.ERC721.value: {
        "Transfer": EventHandler(ERC721Transfer, transfers.handle_erc721_transfer),
        "OwnershipTransferred": _OWNERSHIP,
    },
    TokenStandard.ERC1155.value: {
        "TransferSingle": EventHandler(ERC1155TransferSingle, transfers.handle_erc1155_transfer_single),
        "TransferBatch": EventHandler(ERC1155TransferBatch, transfers.handle_erc1155_transfer_batch),
        "OwnershipTransferred": _OWNERSHIP,
    },
    TokenStandard.ERC6909.value: {
        "Transfer": EventHandler(ERC6909Transfer, transfers.handle_erc6909_transfer),
        "OperatorSet": EventHandler(OperatorSet, transfers.handle_operator_set),
        "OwnershipTransferred": _OWNERSHIP,
    },
}


class EventDispatcher:
    """
    Sequential driver for delivered logs.

    Must be fed in canonical chain order (block, tx index, log index);
    call `close()` after the last log so the final transaction scope is
    swept.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        watchers: Optional[WatcherRegistry] = None,
        config: Settings = settings,
    ):
        self.session_factory = session_factory
        self.watchers = watchers if watchers is not None else InMemoryWatcherRegistry()
        self.config = config
        self.static_sources: dict[str, str] = {
            address.lower(): handler_set
            for address, handler_set in (
                (config.NFT721_FACTORY_ADDRESS, NFT721_FACTORY),
                (config.NFT1155_FACTORY_ADDRESS, NFT1155_FACTORY),
                (config.NFT6909_FACTORY_ADDRESS, NFT6909_FACTORY),
                (config.NFT_MARKETPLACE_ADDRESS, MARKETPLACE),
            )
            if address
        }
        self._scope: Optional[TransactionScope] = None

        # Statistics
        self.dispatched = 0
        self.skipped = 0

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def resolve(self, address: str, event_name: str) -> Optional[EventHandler]:
        address = address.lower()
        handler_set = self.static_sources.get(address) or self.watchers.handler_set_for(address)
        if handler_set is None:
            return None
        return HANDLER_SETS.get(handler_set, {}).get(event_name)

    async def restore_watchers(self) -> int:
        """Re-register watchers for every stored collection (after a restart)."""
        async with self.session_factory() as session:
            result = await session.execute(select(Collection.id, Collection.token_type))
            rows = result.all()

        for row in rows:
            self.watchers.register_watcher(row.id, row.token_type)

        logger.info("Restored %d collection watchers", len(rows))
        return len(rows)

    # ------------------------------------------------------------------
    # Transaction scope
    # ------------------------------------------------------------------

    @property
    def scope(self) -> Optional[TransactionScope]:
        return self._scope

    async def _enter_transaction(self, event: EventContext) -> TransactionScope:
        if self._scope is not None and self._scope.tx_hash == event.tx_hash:
            return self._scope

        await self.close()
        self._scope = TransactionScope(
            tx_hash=event.tx_hash,
            block_number=event.block_number,
            timestamp=event.timestamp,
        )
        return self._scope

    async def close(self) -> None:
        """Close the current transaction scope, sweeping unconsumed breadcrumbs."""
        scope, self._scope = self._scope, None
        if scope is None or not scope.outstanding:
            return

        if not self.config.SWEEP_PENDING_TRANSFERS:
            logger.debug(
                "Leaving %d unconsumed pending transfers from tx %s",
                len(scope.outstanding),
                scope.tx_hash,
            )
            return

        async with self.session_factory() as session:
            async with session.begin():
                await PendingTransferLedger(EntityStore(session)).sweep(scope)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, raw: Any) -> bool:
        """
        Apply one delivered log.

        Returns True when a handler ran, False when the log was not
        routed, predates START_BLOCK, or was already processed.
        Raises EventDecodeError for malformed logs.
        """
        log = decode_log(raw)

        if log.block_number < self.config.START_BLOCK:
            self.skipped += 1
            return False

        handler = self.resolve(log.address, log.event)
        if handler is None:
            logger.debug("No handler for %s from %s", log.event, log.address)
            self.skipped += 1
            return False

        params = decode_params(handler.schema, log)
        event = log.context()
        scope = await self._enter_transaction(event)
        key = event_id(event.tx_hash, event.log_index)

        # Breadcrumb tracking must roll back with the database
        outstanding = set(scope.outstanding)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    store = EntityStore(session)

                    if self.config.DEDUPLICATE_EVENTS and await store.load(ProcessedEvent, key):
                        logger.debug("%s %s already processed, skipping", log.event, key)
                        self.skipped += 1
                        return False

                    await handler.func(HandlerContext(store, event, scope, self.watchers), params)

                    if self.config.DEDUPLICATE_EVENTS:
                        await store.create(
                            ProcessedEvent,
                            key,
                            event_name=log.event,
                            block_number=event.block_number,
                            log_index=event.log_index,
                        )
        except Exception:
            scope.outstanding = outstanding
            raise

        self.dispatched += 1
        return True

    async def dispatch_all(self, raws: Iterable[Any]) -> int:
        """Dispatch logs in order, then close the last scope. Returns handled count."""
        handled = 0
        for raw in raws:
            if await self.dispatch(raw):
                handled += 1
        await self.close()
        return handled
