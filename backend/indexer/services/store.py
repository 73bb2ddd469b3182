"""
Entity store façade over an AsyncSession.

Every write is flushed immediately so later reads within the same
event see it. Commit/rollback belongs to the caller (the dispatcher
wraps each event in one transaction).
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from indexer.models import Base

EntityT = TypeVar("EntityT", bound=Base)


@dataclass
class Fresh(Generic[EntityT]):
    """Entity constructed from defaults because nothing was stored under its key."""

    entity: EntityT


@dataclass
class Existing(Generic[EntityT]):
    """Entity loaded from the store."""

    entity: EntityT


Loaded = Union[Fresh[EntityT], Existing[EntityT]]


class EntityStore:
    """Key-value access to indexer entities, addressed by (model, id)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, model: type[EntityT], entity_id: str) -> Optional[EntityT]:
        return await self.session.get(model, entity_id)

    async def load_or_create(
        self, model: type[EntityT], entity_id: str, **defaults
    ) -> Loaded[EntityT]:
        """
        Load an entity, or construct it from `defaults` when absent.

        The result says which branch was taken so callers can keep
        initialisation (set) apart from evolution (adjust).
        """
        entity = await self.session.get(model, entity_id)
        if entity is not None:
            return Existing(entity)

        entity = model(id=entity_id, **defaults)
        self.session.add(entity)
        return Fresh(entity)

    async def create(self, model: type[EntityT], entity_id: str, **fields) -> EntityT:
        """Write an entity under `entity_id`, overwriting any stored row."""
        entity = await self.session.merge(model(id=entity_id, **fields))
        await self.session.flush()
        return entity

    async def save(self, entity: EntityT) -> EntityT:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def remove(self, model: type[EntityT], entity_id: str) -> bool:
        entity = await self.session.get(model, entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.flush()
        return True

    async def find_by_prefix(self, model: type[EntityT], prefix: str) -> list[EntityT]:
        """Entities whose key starts with `prefix`, ordered by key."""
        await self.session.flush()
        result = await self.session.execute(
            select(model).where(model.id.startswith(prefix, autoescape=True)).order_by(model.id)
        )
        return list(result.scalars())
