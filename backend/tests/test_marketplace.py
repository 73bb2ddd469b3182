import pytest
import pytest_asyncio
from sqlalchemy import select

from indexer.models import Bid, BidHistory, Listing, ListingHistory, PendingTransfer, Transfer
from indexer.services.identity import bid_id, event_id, instance_id

from conftest import ALICE, BOB, CAROL, CURRENCY, MARKETPLACE, NFT_721, NFT_1155, NFT_6909, ZERO

OTHER_CURRENCY = "0x" + "dd" * 20


@pytest_asyncio.fixture(autouse=True)
async def collections(deploy, make_log):
    await deploy("NFT721Created", NFT_721)
    await deploy("NFT1155Created", NFT_1155)
    await deploy("NFT6909Created", NFT_6909)
    make_log.new_tx()


@pytest.fixture
def history(session_factory):
    async def _history(model, column, key):
        async with session_factory() as session:
            result = await session.execute(
                select(model).where(column == key).order_by(model.block_number, model.id)
            )
            return list(result.scalars())

    return _history


def listing_created(make_log, listing_id, token_id, price=100, seller=ALICE):
    return make_log(
        "ListingCreated",
        MARKETPLACE,
        {
            "listingId": str(listing_id),
            "seller": seller,
            "tokenAddress": NFT_721,
            "tokenId": str(token_id),
            "amount": "1",
            "price": str(price),
            "currency": CURRENCY,
        },
    )


def bid_placed(make_log, amount, currency=CURRENCY, bidder=BOB, token_id=5, duration=3600):
    return make_log(
        "BidPlaced",
        MARKETPLACE,
        {
            "bidder": bidder,
            "tokenAddress": NFT_721,
            "tokenId": str(token_id),
            "tokenAmount": "1",
            "amount": str(amount),
            "currency": currency,
            "duration": str(duration),
        },
    )


def bid_outbid(make_log, previous_amount, currency=None, previous_bidder=BOB, token_id=5):
    params = {
        "previousBidder": previous_bidder,
        "tokenAddress": NFT_721,
        "tokenId": str(token_id),
        "tokenAmount": "1",
        "previousAmount": str(previous_amount),
    }
    if currency is not None:
        params["currency"] = currency
    return make_log("BidOutbid", MARKETPLACE, params)


def mint_721(make_log, to, token_id):
    return make_log("Transfer", NFT_721, {"from": ZERO, "to": to, "tokenId": str(token_id)})


BOB_BID = bid_id(BOB, NFT_721, 5, 1, CURRENCY)


# ── Listings ─────────────────────────────────────────────────────────────


async def test_listing_created_then_cancelled(dispatcher, make_log, load, history):
    created = listing_created(make_log, 1, 1)
    await dispatcher.dispatch(created)

    listing = await load(Listing, "1")
    assert listing.status == "ACTIVE"
    assert listing.seller == ALICE
    assert listing.price == 100
    assert listing.created_at == created["blockTimestamp"]

    make_log.new_tx()
    cancelled = make_log("ListingCancelled", MARKETPLACE, {"listingId": "1"})
    await dispatcher.dispatch(cancelled)

    listing = await load(Listing, "1")
    assert listing.status == "CANCELLED"
    assert listing.updated_at == cancelled["blockTimestamp"]
    assert listing.created_at == created["blockTimestamp"]

    rows = await history(ListingHistory, ListingHistory.listing_id, "1")
    assert [row.action for row in rows] == ["CREATED", "CANCELLED"]
    assert rows[1].id == event_id(cancelled["transactionHash"], cancelled["logIndex"])
    assert all(row.instance_id == instance_id(NFT_721, 1) for row in rows)


async def test_listing_links_instance_only_when_known(dispatcher, make_log, load):
    await dispatcher.dispatch(listing_created(make_log, 1, 5))
    assert (await load(Listing, "1")).instance_id is None

    make_log.new_tx()
    await dispatcher.dispatch(mint_721(make_log, ALICE, 6))
    await dispatcher.dispatch(listing_created(make_log, 2, 6))
    assert (await load(Listing, "2")).instance_id == instance_id(NFT_721, 6)


async def test_listing_sold_classifies_the_transfer(dispatcher, make_log, load, count):
    await dispatcher.dispatch(mint_721(make_log, ALICE, 5))
    make_log.new_tx()
    await dispatcher.dispatch(listing_created(make_log, 2, 5))

    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "ListingSold",
            MARKETPLACE,
            {"listingId": "2", "tokenAddress": NFT_721, "tokenId": "5"},
        )
    )
    assert await count(PendingTransfer) == 1

    sale = make_log("Transfer", NFT_721, {"from": ALICE, "to": BOB, "tokenId": "5"})
    await dispatcher.dispatch(sale)

    transfer = await load(Transfer, event_id(sale["transactionHash"], sale["logIndex"]))
    assert transfer.transfer_type == "MARKETPLACE_SALE"
    assert transfer.related_listing_id == "2"
    assert transfer.related_bid_id is None
    assert await count(PendingTransfer) == 0
    assert (await load(Listing, "2")).status == "SOLD"


async def test_sale_breadcrumb_does_not_leak_into_next_transaction(dispatcher, make_log, load):
    await dispatcher.dispatch(mint_721(make_log, ALICE, 5))
    await dispatcher.dispatch(listing_created(make_log, 2, 5))
    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "ListingSold",
            MARKETPLACE,
            {"listingId": "2", "tokenAddress": NFT_721, "tokenId": "5"},
        )
    )

    make_log.new_tx()
    later = make_log("Transfer", NFT_721, {"from": ALICE, "to": BOB, "tokenId": "5"})
    await dispatcher.dispatch(later)

    transfer = await load(Transfer, event_id(later["transactionHash"], later["logIndex"]))
    assert transfer.transfer_type == "DIRECT"
    assert transfer.related_listing_id is None


async def test_unknown_listing_transitions_are_ignored(dispatcher, make_log, count):
    assert await dispatcher.dispatch(
        make_log("ListingCancelled", MARKETPLACE, {"listingId": "99"})
    )
    assert await dispatcher.dispatch(
        make_log(
            "ListingSold",
            MARKETPLACE,
            {"listingId": "99", "tokenAddress": NFT_721, "tokenId": "5"},
        )
    )

    assert await count(Listing) == 0
    assert await count(ListingHistory) == 0
    assert await count(PendingTransfer) == 0


# ── Bids ─────────────────────────────────────────────────────────────────


async def test_bid_placed(dispatcher, make_log, load, history):
    raw = bid_placed(make_log, 50)
    await dispatcher.dispatch(raw)

    bid = await load(Bid, BOB_BID)
    assert bid.status == "ACTIVE"
    assert bid.bidder == BOB
    assert bid.amount == 50
    assert bid.currency == CURRENCY
    assert bid.timeout == raw["blockTimestamp"] + 3600
    assert bid.instance_id is None

    rows = await history(BidHistory, BidHistory.bid_id, BOB_BID)
    assert [row.action for row in rows] == ["PLACED"]
    assert rows[0].amount == 50


async def test_replacing_a_bid_reuses_its_key(dispatcher, make_log, load, count, history):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    make_log.new_tx()
    second = bid_placed(make_log, 60)
    await dispatcher.dispatch(second)

    assert await count(Bid) == 1
    bid = await load(Bid, BOB_BID)
    assert bid.amount == 60
    assert bid.created_at == second["blockTimestamp"]

    rows = await history(BidHistory, BidHistory.bid_id, BOB_BID)
    assert [row.amount for row in rows] == [50, 60]


async def test_bids_in_different_currencies_are_distinct(dispatcher, make_log, count):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    await dispatcher.dispatch(bid_placed(make_log, 50, currency=OTHER_CURRENCY))

    assert await count(Bid) == 2


async def test_outbid_with_currency(dispatcher, make_log, load, history):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    make_log.new_tx()
    await dispatcher.dispatch(bid_placed(make_log, 80, bidder=CAROL))
    await dispatcher.dispatch(bid_outbid(make_log, 50, currency=CURRENCY))

    assert (await load(Bid, BOB_BID)).status == "OUTBID"
    assert (await load(Bid, bid_id(CAROL, NFT_721, 5, 1, CURRENCY))).status == "ACTIVE"
    rows = await history(BidHistory, BidHistory.bid_id, BOB_BID)
    assert [row.action for row in rows] == ["PLACED", "OUTBID"]


async def test_outbid_without_currency_matches_previous_amount(dispatcher, make_log, load):
    other = bid_id(BOB, NFT_721, 5, 1, OTHER_CURRENCY)
    await dispatcher.dispatch(bid_placed(make_log, 50))
    await dispatcher.dispatch(bid_placed(make_log, 70, currency=OTHER_CURRENCY))
    make_log.new_tx()
    await dispatcher.dispatch(bid_outbid(make_log, 70))

    assert (await load(Bid, other)).status == "OUTBID"
    assert (await load(Bid, BOB_BID)).status == "ACTIVE"


async def test_outbid_without_currency_single_active_bid(dispatcher, make_log, load):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    make_log.new_tx()
    await dispatcher.dispatch(bid_outbid(make_log, 999))

    assert (await load(Bid, BOB_BID)).status == "OUTBID"


async def test_ambiguous_outbid_is_ignored(dispatcher, make_log, load):
    other = bid_id(BOB, NFT_721, 5, 1, OTHER_CURRENCY)
    await dispatcher.dispatch(bid_placed(make_log, 50))
    await dispatcher.dispatch(bid_placed(make_log, 70, currency=OTHER_CURRENCY))
    make_log.new_tx()
    await dispatcher.dispatch(bid_outbid(make_log, 999))

    assert (await load(Bid, BOB_BID)).status == "ACTIVE"
    assert (await load(Bid, other)).status == "ACTIVE"


async def test_bid_cancelled(dispatcher, make_log, load):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "BidCancelled",
            MARKETPLACE,
            {
                "bidder": BOB,
                "tokenAddress": NFT_721,
                "tokenId": "5",
                "tokenAmount": "1",
                "amount": "50",
                "currency": CURRENCY,
            },
        )
    )

    assert (await load(Bid, BOB_BID)).status == "CANCELLED"


async def test_bid_accepted_classifies_the_transfer(dispatcher, make_log, load, count):
    await dispatcher.dispatch(mint_721(make_log, ALICE, 5))
    await dispatcher.dispatch(bid_placed(make_log, 50))

    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "BidAccepted",
            MARKETPLACE,
            {
                "bidder": BOB,
                "tokenAddress": NFT_721,
                "tokenId": "5",
                "tokenAmount": "1",
                "currency": CURRENCY,
            },
        )
    )
    sale = make_log("Transfer", NFT_721, {"from": ALICE, "to": BOB, "tokenId": "5"})
    await dispatcher.dispatch(sale)

    bid = await load(Bid, BOB_BID)
    assert bid.status == "ACCEPTED"
    assert bid.instance_id == instance_id(NFT_721, 5)

    transfer = await load(Transfer, event_id(sale["transactionHash"], sale["logIndex"]))
    assert transfer.transfer_type == "BID_ACCEPTANCE"
    assert transfer.related_bid_id == BOB_BID
    assert transfer.related_listing_id is None
    assert await count(PendingTransfer) == 0


async def test_unknown_bid_transitions_are_ignored(dispatcher, make_log, count):
    params = {
        "bidder": BOB,
        "tokenAddress": NFT_721,
        "tokenId": "5",
        "tokenAmount": "1",
        "currency": CURRENCY,
    }
    await dispatcher.dispatch(make_log("BidAccepted", MARKETPLACE, params))
    await dispatcher.dispatch(make_log("BidCancelled", MARKETPLACE, {**params, "amount": "1"}))
    await dispatcher.dispatch(bid_outbid(make_log, 50))

    assert await count(Bid) == 0
    assert await count(BidHistory) == 0
    assert await count(PendingTransfer) == 0


async def test_bid_with_oversized_duration(dispatcher, make_log, load, history):
    duration = 2**64
    raw = bid_placed(make_log, 50, duration=duration)

    assert await dispatcher.dispatch(raw) is True

    assert (await load(Bid, BOB_BID)).timeout == raw["blockTimestamp"] + duration
    rows = await history(BidHistory, BidHistory.bid_id, BOB_BID)
    assert rows[0].timeout == raw["blockTimestamp"] + duration


async def test_outbid_without_currency_takes_lone_terminal_bid(dispatcher, make_log, load):
    await dispatcher.dispatch(bid_placed(make_log, 50))
    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "BidCancelled",
            MARKETPLACE,
            {
                "bidder": BOB,
                "tokenAddress": NFT_721,
                "tokenId": "5",
                "tokenAmount": "1",
                "amount": "50",
                "currency": CURRENCY,
            },
        )
    )
    make_log.new_tx()
    await dispatcher.dispatch(bid_outbid(make_log, 50))

    # Same outcome as an outbid naming the currency
    assert (await load(Bid, BOB_BID)).status == "OUTBID"


# ── Settlement on other token standards ──────────────────────────────────


async def test_bid_acceptance_on_erc6909(dispatcher, make_log, load, count):
    terms = {"bidder": BOB, "tokenAddress": NFT_6909, "tokenId": "3", "tokenAmount": "10"}
    await dispatcher.dispatch(
        make_log(
            "Transfer",
            NFT_6909,
            {"caller": ALICE, "sender": ZERO, "receiver": ALICE, "id": "3", "amount": "10"},
        )
    )
    await dispatcher.dispatch(
        make_log(
            "BidPlaced",
            MARKETPLACE,
            {**terms, "amount": "500", "currency": CURRENCY, "duration": "3600"},
        )
    )

    make_log.new_tx()
    await dispatcher.dispatch(
        make_log("BidAccepted", MARKETPLACE, {**terms, "currency": CURRENCY})
    )
    sale = make_log(
        "Transfer",
        NFT_6909,
        {"caller": ALICE, "sender": ALICE, "receiver": BOB, "id": "3", "amount": "10"},
    )
    await dispatcher.dispatch(sale)

    transfer = await load(Transfer, event_id(sale["transactionHash"], sale["logIndex"]))
    assert transfer.transfer_type == "BID_ACCEPTANCE"
    assert transfer.related_bid_id == bid_id(BOB, NFT_6909, 3, 10, CURRENCY)
    assert await count(PendingTransfer) == 0


@pytest.mark.parametrize(
    "ids, transfer_type, related_listing",
    [
        # The sold token is the last element: its classification is kept
        (["6", "5"], "MARKETPLACE_SALE", "2"),
        # A later element overwrites the shared audit row
        (["5", "6"], "DIRECT", None),
    ],
)
async def test_batch_element_consumes_sale_breadcrumb(
    dispatcher, make_log, load, count, ids, transfer_type, related_listing
):
    await dispatcher.dispatch(
        make_log(
            "TransferBatch",
            NFT_1155,
            {"operator": ALICE, "from": ZERO, "to": ALICE, "ids": ["5", "6"], "values": ["3", "3"]},
        )
    )
    await dispatcher.dispatch(
        make_log(
            "ListingCreated",
            MARKETPLACE,
            {
                "listingId": "2",
                "seller": ALICE,
                "tokenAddress": NFT_1155,
                "tokenId": "5",
                "amount": "3",
                "price": "100",
                "currency": CURRENCY,
            },
        )
    )

    make_log.new_tx()
    await dispatcher.dispatch(
        make_log(
            "ListingSold",
            MARKETPLACE,
            {"listingId": "2", "tokenAddress": NFT_1155, "tokenId": "5"},
        )
    )
    batch = make_log(
        "TransferBatch",
        NFT_1155,
        {"operator": ALICE, "from": ALICE, "to": BOB, "ids": ids, "values": ["3", "3"]},
    )
    await dispatcher.dispatch(batch)

    assert await count(PendingTransfer) == 0
    transfer = await load(Transfer, event_id(batch["transactionHash"], batch["logIndex"]))
    assert transfer.transfer_type == transfer_type
    assert transfer.related_listing_id == related_listing
    assert (await load(Listing, "2")).status == "SOLD"
