import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from pathlib import Path

from nftmarket.config import DatabaseEventsConfig
from nftmarket.config import JsonLinesEventsConfig
from nftmarket.config import NftMarketConfig
from nftmarket.events import DatabaseEventLog
from nftmarket.events import EventLog
from nftmarket.events import JsonLinesEventLog
from nftmarket.events import MemoryEventLog
from nftmarket.ledger import Ledger
from nftmarket.marketplace import Marketplace
from nftmarket.registry import TokenRegistry

_logger = logging.getLogger(__name__)


@dataclass
class MarketContext:
    """Set of wired collaborators created from config"""

    config: NftMarketConfig
    registry: TokenRegistry
    ledger: Ledger
    events: EventLog
    marketplace: Marketplace


def create_event_log(config: NftMarketConfig) -> EventLog:
    events_config = config.events
    if isinstance(events_config, JsonLinesEventsConfig):
        return JsonLinesEventLog(Path(events_config.path))
    if isinstance(events_config, DatabaseEventsConfig):
        return DatabaseEventLog(events_config.url)
    return MemoryEventLog()


async def create_market_context(
    config: NftMarketConfig,
    stack: AsyncExitStack,
) -> MarketContext:
    """Create registry, ledger, event log and marketplace.

    You need to enter `AsyncExitStack` context manager prior to calling this method; event log is closed
    on exit from it.
    """
    events = await stack.enter_async_context(create_event_log(config))
    registry = TokenRegistry(
        address=config.registry.address,
        name=config.registry.name,
        symbol=config.registry.symbol,
    )
    ledger = Ledger(config.accounts)
    marketplace = Marketplace(
        address=config.marketplace.address,
        deployer=config.marketplace.deployer,
        fee_percent=config.marketplace.fee_percent,
        fee_account=config.fee_account,
        ledger=ledger,
        events=events,
    )
    _logger.info('Created %r for %r, events: %s', marketplace, registry, config.events_kind.value)
    return MarketContext(
        config=config,
        registry=registry,
        ledger=ledger,
        events=events,
        marketplace=marketplace,
    )
