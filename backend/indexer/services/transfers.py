"""
Transfer reconciler — balances, supply and the transfer audit trail.

Every transfer log (or each element of a batch) runs the same steps:

  1. Load-or-create the TokenInstance. A fresh instance takes the first
     observed amount as its supply; an existing one gains on mint
     (from == 0x0) and loses on burn (to == 0x0).
  2. Classify: a pending-transfer breadcrumb from the same transaction
     wins (MARKETPLACE_SALE / BID_ACCEPTANCE) and is consumed; otherwise
     MINT, BURN or DIRECT.
  3. Append the immutable Transfer row.
  4. Debit the sender's balance if a row exists (never fabricate one).
  5. Credit the receiver, creating the row at zero first.

The zero address never gets a balance row. ERC721 balances are set to
exactly 1 / 0 instead of being accumulated.
"""

import logging
from dataclasses import dataclass

from indexer.models import Collection, ContractOwnership, TokenBalance, TokenInstance, Transfer
from indexer.models.enums import TransferType
from indexer.schemas.events import (
    ERC1155TransferBatch,
    ERC1155TransferSingle,
    ERC6909Transfer,
    ERC721Transfer,
    OperatorSet,
    OwnershipTransferred,
)
from indexer.services.context import HandlerContext
from indexer.services.identity import balance_id, instance_id, is_zero_address
from indexer.services.store import Existing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenMovement:
    """One unit of reconciliation: `amount` of `token_id` moving between owners."""

    collection_address: str
    token_id: int
    from_address: str
    to_address: str
    amount: int


def classify(from_address: str, to_address: str) -> TransferType:
    """Transfer type when no marketplace context exists."""
    if is_zero_address(from_address):
        return TransferType.MINT
    if is_zero_address(to_address):
        return TransferType.BURN
    return TransferType.DIRECT


def _subtract(current: int, amount: int, what: str, key: str) -> int:
    remaining = current - amount
    if remaining < 0:
        logger.warning(
            "%s of %s would drop below zero (%d - %d), clamping to 0",
            what,
            key,
            current,
            amount,
        )
        return 0
    return remaining


async def reconcile_transfer(
    ctx: HandlerContext, movement: TokenMovement, unique: bool = False
) -> Transfer:
    """Apply one token movement. `unique` selects ERC721 overwrite semantics."""
    event = ctx.event
    minting = is_zero_address(movement.from_address)
    burning = is_zero_address(movement.to_address)
    key = instance_id(movement.collection_address, movement.token_id)

    # 1. Instance and supply
    loaded = await ctx.store.load_or_create(
        TokenInstance,
        key,
        collection_id=movement.collection_address,
        token_id=movement.token_id,
        total_supply=movement.amount,
        minted_at=event.timestamp,
    )
    instance = loaded.entity
    if isinstance(loaded, Existing):
        if minting:
            instance.total_supply += movement.amount
        elif burning:
            instance.total_supply = _subtract(
                instance.total_supply, movement.amount, "Supply", key
            )
    await ctx.store.save(instance)

    # 2. Classification
    breadcrumb = await ctx.ledger.consume(
        event.tx_hash, movement.collection_address, movement.token_id
    )
    if breadcrumb is not None:
        transfer_type = breadcrumb.transfer_type
        related_listing = breadcrumb.listing_id
        related_bid = breadcrumb.bid_id
    else:
        transfer_type = classify(movement.from_address, movement.to_address).value
        related_listing = None
        related_bid = None

    # 3. Audit row
    transfer = await ctx.store.create(
        Transfer,
        ctx.audit_id,
        instance_id=key,
        from_address=movement.from_address,
        to_address=movement.to_address,
        amount=movement.amount,
        transfer_type=transfer_type,
        related_listing_id=related_listing,
        related_bid_id=related_bid,
        timestamp=event.timestamp,
        block_number=event.block_number,
        log_index=event.log_index,
        transaction_hash=event.tx_hash,
    )

    # 4. Debit
    if not minting:
        sender = await ctx.store.load(TokenBalance, balance_id(key, movement.from_address))
        if sender is None:
            logger.debug("No balance for %s on %s, skipping debit", movement.from_address, key)
        else:
            if unique:
                sender.amount = 0
            else:
                sender.amount = _subtract(sender.amount, movement.amount, "Balance", sender.id)
            sender.last_updated_at = event.timestamp
            await ctx.store.save(sender)

    # 5. Credit
    if not burning:
        receiver = (
            await ctx.store.load_or_create(
                TokenBalance,
                balance_id(key, movement.to_address),
                instance_id=key,
                owner=movement.to_address,
                amount=0,
                created_at=event.timestamp,
                last_updated_at=event.timestamp,
            )
        ).entity
        receiver.amount = 1 if unique else receiver.amount + movement.amount
        receiver.last_updated_at = event.timestamp
        await ctx.store.save(receiver)

    logger.debug(
        "Transfer %s: %s x%d %s -> %s (%s)",
        transfer.id,
        key,
        movement.amount,
        movement.from_address,
        movement.to_address,
        transfer_type,
    )
    return transfer


# ── ERC721 ───────────────────────────────────────────────────────────────


async def handle_erc721_transfer(ctx: HandlerContext, params: ERC721Transfer) -> None:
    await reconcile_transfer(
        ctx,
        TokenMovement(
            collection_address=ctx.event.address,
            token_id=params.token_id,
            from_address=params.from_address,
            to_address=params.to_address,
            amount=1,
        ),
        unique=True,
    )


# ── ERC1155 ──────────────────────────────────────────────────────────────


async def handle_erc1155_transfer_single(ctx: HandlerContext, params: ERC1155TransferSingle) -> None:
    await reconcile_transfer(
        ctx,
        TokenMovement(
            collection_address=ctx.event.address,
            token_id=params.token_id,
            from_address=params.from_address,
            to_address=params.to_address,
            amount=params.value,
        ),
    )


async def handle_erc1155_transfer_batch(ctx: HandlerContext, params: ERC1155TransferBatch) -> None:
    """
    Reconcile each (id, value) pair in array order.

    All elements share the log's timestamp and audit key, so the batch
    leaves a single Transfer row describing its last element. Balances
    and supply still see every element.
    """
    for token_id, value in zip(params.ids, params.values):
        await reconcile_transfer(
            ctx,
            TokenMovement(
                collection_address=ctx.event.address,
                token_id=token_id,
                from_address=params.from_address,
                to_address=params.to_address,
                amount=value,
            ),
        )
    if len(params.ids) > 1:
        logger.debug(
            "Batch %s: %d elements share audit row %s",
            ctx.event.tx_hash,
            len(params.ids),
            ctx.audit_id,
        )


# ── ERC6909 ──────────────────────────────────────────────────────────────


async def handle_erc6909_transfer(ctx: HandlerContext, params: ERC6909Transfer) -> None:
    await reconcile_transfer(
        ctx,
        TokenMovement(
            collection_address=ctx.event.address,
            token_id=params.token_id,
            from_address=params.sender,
            to_address=params.receiver,
            amount=params.amount,
        ),
    )


async def handle_operator_set(ctx: HandlerContext, params: OperatorSet) -> None:
    # Operator approvals are observed only; no entity tracks them yet
    logger.debug(
        "OperatorSet on %s: %s -> %s approved=%s",
        ctx.event.address,
        params.owner,
        params.operator,
        params.approved,
    )


# ── Contract ownership (all standards) ───────────────────────────────────


async def handle_ownership_transferred(ctx: HandlerContext, params: OwnershipTransferred) -> None:
    event = ctx.event
    collection = await ctx.store.load(Collection, event.address)
    if collection is None:
        logger.debug("Ownership transfer on untracked contract %s, ignoring", event.address)
        return

    ownership = (await ctx.store.load_or_create(ContractOwnership, event.address)).entity
    ownership.contract_id = collection.id
    ownership.previous_owner = params.previous_owner
    ownership.owner = params.new_owner
    ownership.transferred_at = event.timestamp
    ownership.transaction_hash = event.tx_hash
    await ctx.store.save(ownership)

    logger.info("Collection %s owner is now %s", collection.id, params.new_owner)
