import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from indexer.core.database import get_session
from indexer.models import Bid, BidHistory, Listing, ListingHistory
from indexer.models.enums import BidStatus
from indexer.schemas.entities import BidHistoryOut, BidOut, ListingHistoryOut, ListingOut

router = APIRouter(tags=["marketplace"])


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_listing(
    listing_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Listing with its lifecycle history, oldest first."""
    listing = await session.get(Listing, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")

    result = await session.execute(
        select(ListingHistory)
        .where(ListingHistory.listing_id == listing_id)
        .order_by(ListingHistory.block_number, ListingHistory.timestamp, ListingHistory.id)
    )
    out = ListingOut.model_validate(listing)
    out.history = [ListingHistoryOut.model_validate(row) for row in result.scalars()]
    return out


@router.get("/bids/{bid_id}", response_model=BidOut)
async def get_bid(
    bid_id: str,
    now: Optional[int] = Query(None, ge=0, description="Unix time used for expiry; defaults to now"),
    session: AsyncSession = Depends(get_session),
):
    """
    Bid with its lifecycle history.

    Expiry is not a stored transition: an ACTIVE bid whose timeout has
    passed is reported with is_expired=true.
    """
    bid = await session.get(Bid, bid_id.lower())
    if bid is None:
        raise HTTPException(status_code=404, detail="Bid not found")

    result = await session.execute(
        select(BidHistory)
        .where(BidHistory.bid_id == bid.id)
        .order_by(BidHistory.block_number, BidHistory.timestamp, BidHistory.id)
    )
    reference = now if now is not None else int(time.time())

    out = BidOut.model_validate(bid)
    out.is_expired = bid.status == BidStatus.ACTIVE.value and bid.timeout <= reference
    out.history = [BidHistoryOut.model_validate(row) for row in result.scalars()]
    return out
