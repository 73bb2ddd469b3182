from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from indexer.models.base import ADDRESS_LENGTH, HASH_LENGTH, Base, Uint256


class PendingTransfer(Base):
    """
    Correlation breadcrumb left by a marketplace settlement event.

    Keyed by txHash-tokenAddress-tokenId; the transfer handler for the
    same transaction reads it to classify the transfer, then deletes it.
    """

    __tablename__ = "pending_transfers"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    transaction_hash: Mapped[str] = mapped_column(String(HASH_LENGTH), index=True)
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_id: Mapped[int] = mapped_column(Uint256)
    transfer_type: Mapped[str] = mapped_column(String(20))  # MARKETPLACE_SALE / BID_ACCEPTANCE
    listing_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    bid_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger)


class ProcessedEvent(Base):
    """Marks a log as applied so a redelivered copy is skipped."""

    __tablename__ = "processed_events"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # txHash-logIndex
    event_name: Mapped[str] = mapped_column(String(50))
    block_number: Mapped[int] = mapped_column(BigInteger, index=True)
    log_index: Mapped[int] = mapped_column(Integer)
