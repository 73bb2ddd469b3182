from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from indexer.models.base import ADDRESS_LENGTH, HASH_LENGTH, Base


class Factory(Base):
    """
    A collection factory contract.

    Keyed by the factory's own address. `nft_count` counts the
    collections it has deployed since the indexer first saw it.
    """

    __tablename__ = "factories"

    id: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    token_type: Mapped[str] = mapped_column(String(10))  # ERC721, ERC1155, ERC6909
    nft_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger)


class Collection(Base):
    """A deployed token contract tracked by the indexer (id = contract address)."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    factory_id: Mapped[str] = mapped_column(
        String(ADDRESS_LENGTH), ForeignKey("factories.id"), index=True
    )
    creator: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    name: Mapped[str] = mapped_column(String(255))
    symbol: Mapped[str] = mapped_column(String(64))
    token_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    token_type: Mapped[str] = mapped_column(String(10))
    contract_created_at: Mapped[int] = mapped_column(BigInteger)


class ContractOwnership(Base):
    __tablename__ = "contract_ownerships"

    id: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    contract_id: Mapped[str] = mapped_column(
        String(ADDRESS_LENGTH), ForeignKey("collections.id")
    )
    previous_owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH))
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True)
    transferred_at: Mapped[int] = mapped_column(BigInteger)
    transaction_hash: Mapped[str] = mapped_column(String(HASH_LENGTH))
