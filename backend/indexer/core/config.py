from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "NFT Indexer API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "indexer"
    POSTGRES_PASSWORD: str = "indexer_secret"
    POSTGRES_DB: str = "nft_indexer"

    # Full URL override, e.g. "sqlite+aiosqlite:///replay.db" for local replays
    DATABASE_URL: str = ""

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Chain
    NETWORK: str = "mainnet"
    START_BLOCK: int = 0

    # Static sources (empty = not routed)
    NFT721_FACTORY_ADDRESS: str = ""
    NFT1155_FACTORY_ADDRESS: str = ""
    NFT6909_FACTORY_ADDRESS: str = ""
    NFT_MARKETPLACE_ADDRESS: str = ""

    # Processing
    DEDUPLICATE_EVENTS: bool = True  # skip logs already recorded as processed
    SWEEP_PENDING_TRANSFERS: bool = True  # drop unconsumed breadcrumbs at tx end

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
