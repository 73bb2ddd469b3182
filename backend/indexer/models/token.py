from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from indexer.models.base import ADDRESS_LENGTH, HASH_LENGTH, Base, Uint256


class TokenInstance(Base):
    """
    One token id inside a collection (id = "collection-tokenId").

    Created lazily on the first observed transfer.
    """

    __tablename__ = "token_instances"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    collection_id: Mapped[str] = mapped_column(
        String(ADDRESS_LENGTH), ForeignKey("collections.id"), index=True
    )
    token_id: Mapped[int] = mapped_column(Uint256)
    total_supply: Mapped[int] = mapped_column(Uint256, default=0)
    minted_at: Mapped[int] = mapped_column(BigInteger)


class TokenBalance(Base):
    """Running balance of one owner for one token instance (id = "instance-owner")."""

    __tablename__ = "token_balances"

    id: Mapped[str] = mapped_column(String(210), primary_key=True)
    instance_id: Mapped[str] = mapped_column(
        String(160), ForeignKey("token_instances.id"), index=True
    )
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    amount: Mapped[int] = mapped_column(Uint256, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger)
    last_updated_at: Mapped[int] = mapped_column(BigInteger)


class Transfer(Base):
    """
    Immutable audit row, one per transfer log (or batch element).

    `transfer_type` is MINT / BURN / DIRECT, or the marketplace kind copied
    from a pending-transfer breadcrumb together with the related listing/bid.
    """

    __tablename__ = "transfers"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # txHash-logIndex
    instance_id: Mapped[str] = mapped_column(
        String(160), ForeignKey("token_instances.id"), index=True
    )
    from_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    to_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    amount: Mapped[int] = mapped_column(Uint256)
    transfer_type: Mapped[str] = mapped_column(String(20))
    related_listing_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    related_bid_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    block_number: Mapped[int] = mapped_column(BigInteger)
    log_index: Mapped[int] = mapped_column(Integer)
    transaction_hash: Mapped[str] = mapped_column(String(HASH_LENGTH))

    __table_args__ = (
        Index("ix_transfers_instance_time", "instance_id", "timestamp"),
    )
