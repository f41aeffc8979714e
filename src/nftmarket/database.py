import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from tortoise import Tortoise

_logger = logging.getLogger(__name__)

MODELS_MODULE = 'nftmarket.models'


@asynccontextmanager
async def tortoise_wrapper(
    url: str,
    timeout: int = 60,
) -> AsyncIterator[None]:
    """Initialize Tortoise with internal models, create schema, close connections when done"""
    if ':memory' in url:
        _logger.warning('Using in-memory database; data will be lost on exit')

    try:
        for attempt in range(timeout):
            try:
                await Tortoise.init(
                    db_url=url,
                    modules={'int_models': [MODELS_MODULE]},
                )
            except OSError as e:
                _logger.warning("Can't establish database connection: %s, attempt %s/%s", e, attempt + 1, timeout)
                if attempt == timeout - 1:
                    raise
                await asyncio.sleep(1)
            else:
                break

        await Tortoise.generate_schemas(safe=True)
        yield
    finally:
        await Tortoise.close_connections()
