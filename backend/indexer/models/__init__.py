from indexer.models.base import Base
from indexer.models.collection import Collection, ContractOwnership, Factory
from indexer.models.token import TokenBalance, TokenInstance, Transfer
from indexer.models.marketplace import Bid, BidHistory, Listing, ListingHistory
from indexer.models.pending import PendingTransfer, ProcessedEvent

__all__ = [
    "Base",
    "Factory",
    "Collection",
    "ContractOwnership",
    "TokenInstance",
    "TokenBalance",
    "Transfer",
    "Listing",
    "ListingHistory",
    "Bid",
    "BidHistory",
    "PendingTransfer",
    "ProcessedEvent",
]
