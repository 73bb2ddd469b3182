"""
Factory/collection registrars — one per token standard.

A factory's "collection created" event bumps the factory's counter,
starts watching the new contract, then records the Collection.
"""

import logging

from indexer.models import Collection, Factory
from indexer.models.enums import TokenStandard
from indexer.schemas.events import CollectionCreated
from indexer.services.context import HandlerContext
from indexer.services.store import Fresh

logger = logging.getLogger(__name__)


async def register_collection(
    ctx: HandlerContext, params: CollectionCreated, standard: TokenStandard
) -> Collection:
    event = ctx.event

    # Factory is keyed by the emitting factory, not the new collection
    loaded = await ctx.store.load_or_create(
        Factory,
        event.address,
        token_type=standard.value,
        nft_count=0,
        created_at=event.timestamp,
    )
    factory = loaded.entity
    factory.nft_count += 1
    await ctx.store.save(factory)

    if isinstance(loaded, Fresh):
        logger.info("New %s factory %s", standard.value, factory.id)

    # The watcher must exist before any log from the collection arrives
    ctx.watchers.register_watcher(params.nft_address, standard.value)

    collection = await ctx.store.create(
        Collection,
        params.nft_address,
        factory_id=factory.id,
        creator=params.owner,
        name=params.name,
        symbol=params.symbol,
        token_address=params.nft_address,
        token_type=standard.value,
        contract_created_at=event.timestamp,
    )

    logger.info(
        "Collection %s (%s, %s) created by factory %s, count=%d",
        collection.id,
        standard.value,
        params.symbol,
        factory.id,
        factory.nft_count,
    )
    return collection


async def handle_nft721_created(ctx: HandlerContext, params: CollectionCreated) -> None:
    await register_collection(ctx, params, TokenStandard.ERC721)


async def handle_nft1155_created(ctx: HandlerContext, params: CollectionCreated) -> None:
    await register_collection(ctx, params, TokenStandard.ERC1155)


async def handle_nft6909_created(ctx: HandlerContext, params: CollectionCreated) -> None:
    await register_collection(ctx, params, TokenStandard.ERC6909)
