import os

# Keep the module-level engine off PostgreSQL while tests import the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from indexer.core.config import Settings
from indexer.core.database import init_models
from indexer.services.dispatcher import EventDispatcher

FACTORY_721 = "0x" + "f7" * 20
FACTORY_1155 = "0x" + "f1" * 20
FACTORY_6909 = "0x" + "f6" * 20
MARKETPLACE = "0x" + "ee" * 20

ZERO = "0x" + "00" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
CAROL = "0x" + "c4" * 20
CURRENCY = "0x" + "cc" * 20

NFT_721 = "0x" + "72" * 20
NFT_1155 = "0x" + "15" * 20
NFT_6909 = "0x" + "69" * 20


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


class LogFactory:
    """Builds raw log envelopes in chain order."""

    def __init__(self):
        self.block = 100
        self.timestamp = 1_700_000_000
        self.log_index = 0
        self.tx_count = 0
        self.tx_hash = None

    def new_tx(self) -> str:
        """Start a new transaction in a new block."""
        self.tx_count += 1
        self.block += 1
        self.timestamp += 12
        self.tx_hash = tx_hash(self.tx_count)
        return self.tx_hash

    def __call__(self, event: str, address: str, params: dict, log_index: int = None) -> dict:
        if self.tx_hash is None:
            self.new_tx()
        if log_index is None:
            log_index = self.log_index
            self.log_index += 1
        return {
            "event": event,
            "address": address,
            "transactionHash": self.tx_hash,
            "logIndex": log_index,
            "blockNumber": self.block,
            "blockTimestamp": self.timestamp,
            "params": params,
        }


@pytest.fixture
def make_log() -> LogFactory:
    return LogFactory()


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        NFT721_FACTORY_ADDRESS=FACTORY_721,
        NFT1155_FACTORY_ADDRESS=FACTORY_1155,
        NFT6909_FACTORY_ADDRESS=FACTORY_6909,
        NFT_MARKETPLACE_ADDRESS=MARKETPLACE,
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def dispatcher(session_factory, config) -> EventDispatcher:
    return EventDispatcher(session_factory, config=config)


@pytest.fixture
def load(session_factory):
    """Read an entity back in a fresh session."""

    async def _load(model, entity_id):
        async with session_factory() as session:
            return await session.get(model, entity_id)

    return _load


@pytest.fixture
def count(session_factory):
    """Number of stored rows of a model."""
    from sqlalchemy import func, select

    async def _count(model):
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    return _count


@pytest.fixture
def deploy(dispatcher, make_log):
    """Deploy a collection through its factory and return its address."""

    factories = {
        "NFT721Created": FACTORY_721,
        "NFT1155Created": FACTORY_1155,
        "NFT6909Created": FACTORY_6909,
    }

    async def _deploy(event: str, nft_address: str, name: str = "Test", symbol: str = "TST") -> str:
        make_log.new_tx()
        await dispatcher.dispatch(
            make_log(
                event,
                factories[event],
                {"nftAddress": nft_address, "owner": ALICE, "name": name, "symbol": symbol},
            )
        )
        return nft_address

    return _deploy
