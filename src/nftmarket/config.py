"""Config files parsing and processing

* YAML (de)serialization and env variables (`${...}` syntax) live in `nftmarket.yaml` module.
* Validation is performed by pydantic dataclasses below.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Annotated
from typing import Literal

from pydantic import BeforeValidator
from pydantic import ConfigDict
from pydantic import Field
from pydantic import TypeAdapter
from pydantic import ValidationError
from pydantic.dataclasses import dataclass

from nftmarket import __spec_version__
from nftmarket import env
from nftmarket.enums import EventLogKind
from nftmarket.exceptions import ConfigurationError
from nftmarket.registry import DEFAULT_NAME
from nftmarket.registry import DEFAULT_SYMBOL
from nftmarket.yaml import NftMarketYAMLConfig

DEFAULT_EVENTS_PATH = 'events.jsonl'
DEFAULT_DATABASE_URL = 'sqlite://:memory:'

ToStr = Annotated[str, BeforeValidator(str)]

_logger = logging.getLogger(__name__)


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class RegistryConfig:
    """Token registry config

    :param address: Registry address
    :param name: Collection name
    :param symbol: Collection symbol
    """

    address: str
    name: str = DEFAULT_NAME
    symbol: str = DEFAULT_SYMBOL


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class MarketplaceConfig:
    """Marketplace config

    :param address: Marketplace address; listed tokens are held by it
    :param deployer: Account that created the marketplace
    :param fee_percent: Market fee, whole percent of the item price
    :param fee_account: Fee recipient; defaults to deployer
    """

    address: str
    deployer: str
    fee_percent: int = Field(default=1, ge=0)
    fee_account: str | None = None


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class MemoryEventsConfig:
    """Keep events in memory

    :param kind: always 'memory'
    """

    kind: Literal['memory'] = 'memory'


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class JsonLinesEventsConfig:
    """Append events to a JSON Lines file

    :param kind: always 'jsonl'
    :param path: Path to the file
    """

    kind: Literal['jsonl']
    path: str = DEFAULT_EVENTS_PATH


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class DatabaseEventsConfig:
    """Store events in SQL database

    :param kind: always 'database'
    :param url: Tortoise ORM connection string
    """

    kind: Literal['database']
    url: str = DEFAULT_DATABASE_URL


EventsConfigU = MemoryEventsConfig | JsonLinesEventsConfig | DatabaseEventsConfig


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class PrometheusConfig:
    """Config for Prometheus integration.

    :param host: Host to bind to
    :param port: Port to bind to
    """

    host: str
    port: int = 8000


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class NftMarketConfig:
    """nftmarket configuration file

    :param spec_version: Version of config specification, currently always `1.0`
    :param registry: Token registry config
    :param marketplace: Marketplace config
    :param accounts: Mapping of accounts and their initial balances in subunits
    :param events: Event log config
    :param prometheus: Prometheus integration config
    :param logging: Modify logging verbosity
    """

    spec_version: ToStr
    registry: RegistryConfig
    marketplace: MarketplaceConfig
    accounts: dict[str, int] = Field(default_factory=dict)
    events: EventsConfigU = Field(default_factory=MemoryEventsConfig)
    prometheus: PrometheusConfig | None = None
    logging: dict[str, str | int] | str | int = 'INFO'

    def __post_init__(self) -> None:
        self._paths: list[Path] = []
        self._environment: dict[str, str] = {}

    @property
    def fee_account(self) -> str:
        return self.marketplace.fee_account or self.marketplace.deployer

    @property
    def environment(self) -> dict[str, str]:
        return self._environment

    @property
    def events_kind(self) -> EventLogKind:
        return EventLogKind(self.events.kind)

    @classmethod
    def load(
        cls,
        paths: list[Path],
        environment: bool = True,
        unsafe: bool = False,
    ) -> NftMarketConfig:
        config_json, config_environment = NftMarketYAMLConfig.load(
            paths=paths,
            environment=environment,
            unsafe=unsafe,
        )

        try:
            config = TypeAdapter(cls).validate_python(config_json)
        except ConfigurationError:
            raise
        except ValidationError as e:
            errors_by_path = defaultdict(list)
            for error in e.errors():
                path = '.'.join(str(loc) for loc in error['loc'])
                errors_by_path[path].append(error['msg'])

            msgs = [f'- {path}: {msg}' for path, errors in errors_by_path.items() for msg in errors]
            raise ConfigurationError('Config validation failed:\n\n' + '\n'.join(msgs)) from e

        config._paths = paths
        config._environment = config_environment
        config._validate()
        return config

    def set_up_logging(self) -> None:
        loglevels = {}
        if isinstance(self.logging, dict):
            loglevels = {**self.logging}
        else:
            loglevels['nftmarket'] = self.logging

        # NOTE: Environment variables have higher priority
        if env.DEBUG:
            loglevels['nftmarket'] = 'DEBUG'

        for name, level in loglevels.items():
            try:
                if isinstance(level, str):
                    level = getattr(logging, level.upper())
                if not isinstance(level, int):
                    raise ValueError
            except (AttributeError, ValueError):
                raise ConfigurationError(f'Invalid logging level `{level}` for logger `{name}`') from None

            logging.getLogger(name).setLevel(level)

    def dump(self) -> str:
        return NftMarketYAMLConfig(
            **TypeAdapter(NftMarketConfig).dump_python(self, mode='json'),
        ).dump()

    def _validate(self) -> None:
        if self.spec_version != __spec_version__:
            raise ConfigurationError(
                f'Incompatible spec version: expected {__spec_version__}, got {self.spec_version}.'
            )

        if self.registry.address == self.marketplace.address:
            raise ConfigurationError('Registry and marketplace must have different addresses')

        for account, balance in self.accounts.items():
            if balance < 0:
                raise ConfigurationError(f'`accounts.{account}`: initial balance must be non-negative')

        if self.marketplace.fee_account is None:
            _logger.info('`fee_account` is not set; fees go to deployer `%s`', self.marketplace.deployer)

