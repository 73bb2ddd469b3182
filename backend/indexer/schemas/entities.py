"""
Read-API response schemas for the derived entity graph.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OwnershipOut(BaseModel):
    owner: str
    previous_owner: str
    transferred_at: int
    transaction_hash: str

    model_config = {"from_attributes": True}


class CollectionOut(BaseModel):
    id: str
    factory_id: str
    creator: str
    name: str
    symbol: str
    token_type: str
    contract_created_at: int
    ownership: Optional[OwnershipOut] = None

    model_config = {"from_attributes": True}


class BalanceOut(BaseModel):
    instance_id: str
    owner: str
    amount: int
    last_updated_at: int

    model_config = {"from_attributes": True}


class TokenOut(BaseModel):
    id: str
    collection_id: str
    token_id: int
    total_supply: int
    minted_at: int
    balances: list[BalanceOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TransferOut(BaseModel):
    id: str
    from_address: str
    to_address: str
    amount: int
    transfer_type: str
    related_listing_id: Optional[str] = None
    related_bid_id: Optional[str] = None
    timestamp: int
    block_number: int
    transaction_hash: str

    model_config = {"from_attributes": True}


class ListingHistoryOut(BaseModel):
    id: str
    action: str
    price: int
    amount: int
    timestamp: int
    transaction_hash: str

    model_config = {"from_attributes": True}


class ListingOut(BaseModel):
    id: str
    instance_id: Optional[str] = None
    seller: str
    token_address: str
    token_id: int
    amount: int
    price: int
    currency: str
    status: str
    created_at: int
    updated_at: int
    history: list[ListingHistoryOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class BidHistoryOut(BaseModel):
    id: str
    action: str
    amount: int
    timeout: int
    timestamp: int
    transaction_hash: str

    model_config = {"from_attributes": True}


class BidOut(BaseModel):
    id: str
    instance_id: Optional[str] = None
    bidder: str
    token_address: str
    token_id: int
    token_amount: int
    amount: int
    currency: str
    timeout: int
    status: str
    is_expired: bool = False  # computed at read time
    created_at: int
    updated_at: int
    history: list[BidHistoryOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}
