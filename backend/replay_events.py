"""
Replay newline-delimited JSON logs through the indexer.

Each line is one delivered log envelope:

    {"event": "Transfer", "address": "0x..", "transactionHash": "0x..",
     "logIndex": 0, "blockNumber": 1, "blockTimestamp": 1700000000,
     "params": {"from": "0x..", "to": "0x..", "tokenId": "1"}}

Lines must already be in chain order. A malformed line aborts the replay.
"""

import argparse
import asyncio
import json
import logging
import sys

from indexer.core.config import settings
from indexer.core.database import async_session, engine, init_models
from indexer.schemas.events import EventDecodeError
from indexer.services.dispatcher import EventDispatcher

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def main(path: str) -> int:
    """Replay one file. Returns a process exit code."""
    logger.info("Replaying %s into %s (network=%s)", path, engine.url.render_as_string(), settings.NETWORK)

    await init_models()
    dispatcher = EventDispatcher(async_session)
    await dispatcher.restore_watchers()

    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                await dispatcher.dispatch(json.loads(line))
            except (json.JSONDecodeError, EventDecodeError) as e:
                logger.error("Line %d: %s", line_no, e)
                await dispatcher.close()
                return 1

    await dispatcher.close()

    logger.info("=" * 60)
    logger.info("REPLAY COMPLETE")
    logger.info("=" * 60)
    logger.info("Dispatched: %d", dispatcher.dispatched)
    logger.info("Skipped: %d", dispatcher.skipped)
    logger.info("Collections watched: %d", len(dispatcher.watchers))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("path", help="newline-delimited JSON log file")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.path)))
