"""
Marketplace settlement tracker — listing and bid lifecycles.

Listing:  ACTIVE -> CANCELLED | SOLD
Bid:      ACTIVE -> OUTBID | CANCELLED | ACCEPTED

Only creation events (ListingCreated, BidPlaced) author entities. Every
other transition is a no-op when its target cannot be loaded. Each
transition appends a history row holding a snapshot of the entity.

Settlements (SOLD, ACCEPTED) also leave a pending-transfer breadcrumb so
the token transfer later in the same transaction can be classified.
"""

import logging
from typing import Optional

from indexer.models import Bid, BidHistory, Listing, ListingHistory, TokenInstance
from indexer.models.enums import BidStatus, ListingStatus, TransferType
from indexer.schemas.events import (
    BidAccepted,
    BidCancelled,
    BidOutbid,
    BidPlaced,
    ListingCancelled,
    ListingCreated,
    ListingSold,
)
from indexer.services.context import HandlerContext
from indexer.services.identity import bid_id, bid_id_prefix, instance_id, listing_id
from indexer.services.store import Existing

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# History snapshots
# ------------------------------------------------------------------

async def _record_listing_history(ctx: HandlerContext, listing: Listing, action: str) -> ListingHistory:
    event = ctx.event
    return await ctx.store.create(
        ListingHistory,
        ctx.audit_id,
        listing_id=listing.id,
        action=action,
        instance_id=instance_id(listing.token_address, listing.token_id),
        seller=listing.seller,
        token_address=listing.token_address,
        token_id=listing.token_id,
        amount=listing.amount,
        price=listing.price,
        currency=listing.currency,
        timestamp=event.timestamp,
        block_number=event.block_number,
        transaction_hash=event.tx_hash,
    )


async def _record_bid_history(ctx: HandlerContext, bid: Bid, action: str) -> BidHistory:
    event = ctx.event
    return await ctx.store.create(
        BidHistory,
        ctx.audit_id,
        bid_id=bid.id,
        action=action,
        instance_id=instance_id(bid.token_address, bid.token_id),
        bidder=bid.bidder,
        token_address=bid.token_address,
        token_id=bid.token_id,
        token_amount=bid.token_amount,
        amount=bid.amount,
        currency=bid.currency,
        timeout=bid.timeout,
        timestamp=event.timestamp,
        block_number=event.block_number,
        transaction_hash=event.tx_hash,
    )


async def _existing_instance_key(ctx: HandlerContext, token_address: str, token_id: int) -> Optional[str]:
    """Instance key if the token has been seen, else None."""
    key = instance_id(token_address, token_id)
    if await ctx.store.load(TokenInstance, key) is None:
        return None
    return key


# ------------------------------------------------------------------
# Listings
# ------------------------------------------------------------------

async def handle_listing_created(ctx: HandlerContext, params: ListingCreated) -> Listing:
    event = ctx.event
    listing = await ctx.store.create(
        Listing,
        listing_id(params.listing_id),
        instance_id=await _existing_instance_key(ctx, params.token_address, params.token_id),
        seller=params.seller,
        token_address=params.token_address,
        token_id=params.token_id,
        amount=params.amount,
        price=params.price,
        currency=params.currency,
        status=ListingStatus.ACTIVE.value,
        created_at=event.timestamp,
        updated_at=event.timestamp,
    )
    await _record_listing_history(ctx, listing, "CREATED")

    logger.info("Listing %s created by %s at price %d", listing.id, listing.seller, listing.price)
    return listing


async def _transition_listing(
    ctx: HandlerContext, raw_listing_id: int, status: ListingStatus
) -> Optional[Listing]:
    listing = await ctx.store.load(Listing, listing_id(raw_listing_id))
    if listing is None:
        logger.debug("Listing %s not found, ignoring %s", raw_listing_id, status.value)
        return None

    listing.status = status.value
    listing.updated_at = ctx.event.timestamp
    await ctx.store.save(listing)
    await _record_listing_history(ctx, listing, status.value)
    return listing


async def handle_listing_cancelled(ctx: HandlerContext, params: ListingCancelled) -> None:
    listing = await _transition_listing(ctx, params.listing_id, ListingStatus.CANCELLED)
    if listing is not None:
        logger.info("Listing %s cancelled", listing.id)


async def handle_listing_sold(ctx: HandlerContext, params: ListingSold) -> None:
    listing = await _transition_listing(ctx, params.listing_id, ListingStatus.SOLD)
    if listing is None:
        return

    await ctx.ledger.put(
        ctx.event.tx_hash,
        params.token_address,
        params.token_id,
        TransferType.MARKETPLACE_SALE.value,
        ctx.event.timestamp,
        listing_id=listing.id,
    )
    logger.info("Listing %s sold", listing.id)


# ------------------------------------------------------------------
# Bids
# ------------------------------------------------------------------

async def handle_bid_placed(ctx: HandlerContext, params: BidPlaced) -> Bid:
    event = ctx.event
    key = bid_id(
        params.bidder,
        params.token_address,
        params.token_id,
        params.token_amount,
        params.currency,
    )
    instance_key = await _existing_instance_key(ctx, params.token_address, params.token_id)

    # Same tuple re-placed -> same row, fields refreshed
    loaded = await ctx.store.load_or_create(Bid, key, instance_id=None)
    bid = loaded.entity
    if instance_key is not None:
        bid.instance_id = instance_key
    bid.bidder = params.bidder
    bid.token_address = params.token_address
    bid.token_id = params.token_id
    bid.token_amount = params.token_amount
    bid.amount = params.amount
    bid.currency = params.currency
    bid.timeout = event.timestamp + params.duration
    bid.status = BidStatus.ACTIVE.value
    bid.created_at = event.timestamp
    bid.updated_at = event.timestamp
    await ctx.store.save(bid)
    await _record_bid_history(ctx, bid, "PLACED")

    if isinstance(loaded, Existing):
        logger.info("Bid %s re-placed at %d", bid.id, bid.amount)
    else:
        logger.info("Bid %s placed at %d", bid.id, bid.amount)
    return bid


async def _resolve_outbid(ctx: HandlerContext, params: BidOutbid) -> Optional[Bid]:
    """
    Bid named by an outbid event.

    With a currency the key is exact and the bid is taken whatever its
    status. Without one, ACTIVE candidates are preferred (amount match
    first); a lone candidate in a terminal state is still taken, like the
    keyed path would.
    """
    if params.currency is not None:
        return await ctx.store.load(
            Bid,
            bid_id(
                params.previous_bidder,
                params.token_address,
                params.token_id,
                params.token_amount,
                params.currency,
            ),
        )

    # No currency on the event: match on the remaining identity parts
    candidates = await ctx.store.find_by_prefix(
        Bid,
        bid_id_prefix(params.previous_bidder, params.token_address, params.token_id, params.token_amount),
    )
    active = [bid for bid in candidates if bid.status == BidStatus.ACTIVE.value]
    exact = [bid for bid in active if bid.amount == params.previous_amount]
    if exact:
        return exact[0]
    if len(active) == 1:
        return active[0]
    if not active and len(candidates) == 1:
        return candidates[0]
    if active:
        logger.debug(
            "Outbid of %s matches %d active bids, ignoring",
            params.previous_bidder,
            len(active),
        )
    return None


async def _transition_bid(ctx: HandlerContext, bid: Bid, status: BidStatus) -> Bid:
    bid.status = status.value
    bid.updated_at = ctx.event.timestamp
    await ctx.store.save(bid)
    await _record_bid_history(ctx, bid, status.value)
    return bid


async def handle_bid_outbid(ctx: HandlerContext, params: BidOutbid) -> None:
    bid = await _resolve_outbid(ctx, params)
    if bid is None:
        logger.debug("No bid of %s to mark outbid", params.previous_bidder)
        return

    await _transition_bid(ctx, bid, BidStatus.OUTBID)
    logger.info("Bid %s outbid", bid.id)


async def handle_bid_cancelled(ctx: HandlerContext, params: BidCancelled) -> None:
    key = bid_id(
        params.bidder,
        params.token_address,
        params.token_id,
        params.token_amount,
        params.currency,
    )
    bid = await ctx.store.load(Bid, key)
    if bid is None:
        logger.debug("Bid %s not found, ignoring cancellation", key)
        return

    await _transition_bid(ctx, bid, BidStatus.CANCELLED)
    logger.info("Bid %s cancelled", bid.id)


async def handle_bid_accepted(ctx: HandlerContext, params: BidAccepted) -> None:
    key = bid_id(
        params.bidder,
        params.token_address,
        params.token_id,
        params.token_amount,
        params.currency,
    )
    bid = await ctx.store.load(Bid, key)
    if bid is None:
        logger.debug("Bid %s not found, ignoring acceptance", key)
        return

    await _transition_bid(ctx, bid, BidStatus.ACCEPTED)
    await ctx.ledger.put(
        ctx.event.tx_hash,
        params.token_address,
        params.token_id,
        TransferType.BID_ACCEPTANCE.value,
        ctx.event.timestamp,
        bid_id=bid.id,
    )
    logger.info("Bid %s accepted", bid.id)
