"""
Dynamic watcher registry.

Collections are discovered at runtime from factory events. Registering a
watcher tells the event router to deliver that contract's logs to the
handler set of its token standard.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class WatcherRegistry(ABC):
    """Capability to start observing a newly discovered contract."""

    @abstractmethod
    def register_watcher(self, contract_address: str, handler_set: str) -> None:
        """Route future logs of `contract_address` to `handler_set`."""
        ...

    @abstractmethod
    def handler_set_for(self, contract_address: str) -> Optional[str]:
        """Handler set registered for the address, or None."""
        ...


class InMemoryWatcherRegistry(WatcherRegistry):
    """Process-local registry; rebuilt from stored collections on restart."""

    def __init__(self):
        self._watchers: dict[str, str] = {}

    def register_watcher(self, contract_address: str, handler_set: str) -> None:
        address = contract_address.lower()
        previous = self._watchers.get(address)
        if previous is not None and previous != handler_set:
            logger.warning(
                "Watcher for %s re-registered: %s -> %s", address, previous, handler_set
            )
        self._watchers[address] = handler_set
        logger.info("Watching %s with %s handlers", address, handler_set)

    def handler_set_for(self, contract_address: str) -> Optional[str]:
        return self._watchers.get(contract_address.lower())

    def __contains__(self, contract_address: str) -> bool:
        return contract_address.lower() in self._watchers

    def __len__(self) -> int:
        return len(self._watchers)
