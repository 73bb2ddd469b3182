from dataclasses import dataclass

from indexer.schemas.events import EventContext
from indexer.services.identity import event_id
from indexer.services.pending_ledger import PendingTransferLedger, TransactionScope
from indexer.services.store import EntityStore
from indexer.services.watchers import WatcherRegistry


@dataclass
class HandlerContext:
    """Everything a handler may touch while applying one log."""

    store: EntityStore
    event: EventContext
    scope: TransactionScope
    watchers: WatcherRegistry

    @property
    def ledger(self) -> PendingTransferLedger:
        return PendingTransferLedger(self.store, self.scope)

    @property
    def audit_id(self) -> str:
        return event_id(self.event.tx_hash, self.event.log_index)
