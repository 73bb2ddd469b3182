from sqlalchemy import BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from indexer.models.base import ADDRESS_LENGTH, HASH_LENGTH, Base, Uint256


class Listing(Base):
    """
    Marketplace listing, keyed by the on-chain listing id.

    Status: ACTIVE -> CANCELLED | SOLD
    """

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    instance_id: Mapped[str | None] = mapped_column(String(160), nullable=True, index=True)
    seller: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_id: Mapped[int] = mapped_column(Uint256)
    amount: Mapped[int] = mapped_column(Uint256)
    price: Mapped[int] = mapped_column(Uint256)
    currency: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", index=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    updated_at: Mapped[int] = mapped_column(BigInteger)


class ListingHistory(Base):
    """Append-only snapshot of a listing at each lifecycle transition."""

    __tablename__ = "listing_history"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # txHash-logIndex
    listing_id: Mapped[str] = mapped_column(String(80), index=True)
    action: Mapped[str] = mapped_column(String(20))  # CREATED / CANCELLED / SOLD
    instance_id: Mapped[str | None] = mapped_column(String(160), nullable=True)
    seller: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_id: Mapped[int] = mapped_column(Uint256)
    amount: Mapped[int] = mapped_column(Uint256)
    price: Mapped[int] = mapped_column(Uint256)
    currency: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    timestamp: Mapped[int] = mapped_column(BigInteger)
    block_number: Mapped[int] = mapped_column(BigInteger)
    transaction_hash: Mapped[str] = mapped_column(String(HASH_LENGTH))


class Bid(Base):
    """
    Marketplace bid.

    Bids carry no on-chain id; the key is derived from
    bidder-tokenAddress-tokenId-tokenAmount-currency, so at most one
    live bid exists per tuple and re-placing one reuses the row.

    Status: ACTIVE -> OUTBID | CANCELLED | ACCEPTED
    """

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(300), primary_key=True)
    instance_id: Mapped[str | None] = mapped_column(String(160), nullable=True, index=True)
    bidder: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_id: Mapped[int] = mapped_column(Uint256)
    token_amount: Mapped[int] = mapped_column(Uint256)
    amount: Mapped[int] = mapped_column(Uint256)
    currency: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    timeout: Mapped[int] = mapped_column(Uint256)  # placement time + duration
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", index=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    updated_at: Mapped[int] = mapped_column(BigInteger)


class BidHistory(Base):
    __tablename__ = "bid_history"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # txHash-logIndex
    bid_id: Mapped[str] = mapped_column(String(300), index=True)
    action: Mapped[str] = mapped_column(String(20))  # PLACED / OUTBID / CANCELLED / ACCEPTED
    instance_id: Mapped[str | None] = mapped_column(String(160), nullable=True)
    bidder: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_id: Mapped[int] = mapped_column(Uint256)
    token_amount: Mapped[int] = mapped_column(Uint256)
    amount: Mapped[int] = mapped_column(Uint256)
    currency: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    timeout: Mapped[int] = mapped_column(Uint256)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    block_number: Mapped[int] = mapped_column(BigInteger)
    transaction_hash: Mapped[str] = mapped_column(String(HASH_LENGTH))

    __table_args__ = (
        Index("ix_bid_history_bid_time", "bid_id", "timestamp"),
    )
