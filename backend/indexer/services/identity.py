"""
Deterministic entity keys derived from event fields.

All addresses and hashes are expected lower-cased hex (the decoding layer
normalizes them); integers are rendered in decimal. Parts are joined
with "-".
"""

ZERO_ADDRESS = "0x" + "0" * 40

SEPARATOR = "-"


def _join(*parts) -> str:
    return SEPARATOR.join(str(part) for part in parts)


def is_zero_address(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def instance_id(collection_address: str, token_id: int) -> str:
    """TokenInstance key: collection-tokenId."""
    return _join(collection_address.lower(), int(token_id))


def balance_id(instance_key: str, owner: str) -> str:
    """TokenBalance key: instance-owner."""
    return _join(instance_key, owner.lower())


def event_id(tx_hash: str, log_index: int) -> str:
    """
    Audit key for append-only rows: txHash-logIndex.

    Unique per log: log indexes are unique within a transaction and
    transaction hashes are globally unique.
    """
    return _join(tx_hash.lower(), int(log_index))


def pending_transfer_id(tx_hash: str, token_address: str, token_id: int) -> str:
    """PendingTransfer key: txHash-tokenAddress-tokenId."""
    return _join(tx_hash.lower(), token_address.lower(), int(token_id))


def listing_id(raw_listing_id: int) -> str:
    return str(int(raw_listing_id))


def bid_id_prefix(bidder: str, token_address: str, token_id: int, token_amount: int) -> str:
    """Leading part of a bid key, shared by every currency for the same bid terms."""
    return _join(bidder.lower(), token_address.lower(), int(token_id), int(token_amount)) + SEPARATOR


def bid_id(
    bidder: str,
    token_address: str,
    token_id: int,
    token_amount: int,
    currency: str,
) -> str:
    """
    Bid key: bidder-tokenAddress-tokenId-tokenAmount-currency.

    Precondition: at most one live bid per (bidder, token, tokenAmount,
    currency). A new bid with the same tuple maps to the same key and
    overwrites the earlier row.
    """
    return bid_id_prefix(bidder, token_address, token_id, token_amount) + currency.lower()
