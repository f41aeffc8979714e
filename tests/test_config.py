import logging
from pathlib import Path

import pytest

from nftmarket.config import DatabaseEventsConfig
from nftmarket.config import JsonLinesEventsConfig
from nftmarket.config import MemoryEventsConfig
from nftmarket.config import NftMarketConfig
from nftmarket.enums import EventLogKind
from nftmarket.exceptions import ConfigurationError
from nftmarket.yaml import NftMarketYAMLConfig
from tests import ALICE
from tests import CAROL
from tests import DEPLOYER
from tests import ETHER
from tests import MARKETPLACE_ADDRESS
from tests import NFT_ADDRESS
from tests import TEST_CONFIGS

ROOT_CONFIG = TEST_CONFIGS / 'nftmarket.yaml'


def _load(*names: str) -> NftMarketConfig:
    paths = [ROOT_CONFIG, *(TEST_CONFIGS / name for name in names)]
    return NftMarketConfig.load(paths, environment=True, unsafe=True)


async def test_load() -> None:
    config = _load()

    assert config.spec_version == '1.0'
    assert config.registry.address == NFT_ADDRESS
    assert config.registry.symbol == 'DAPP'
    assert config.marketplace.address == MARKETPLACE_ADDRESS
    assert config.marketplace.fee_percent == 1
    assert config.accounts[ALICE] == 10_000 * ETHER
    assert config.events == MemoryEventsConfig()
    assert config.events_kind == EventLogKind.memory
    assert config.prometheus is None


async def test_fee_account_defaults_to_deployer() -> None:
    assert _load().fee_account == DEPLOYER

    config = _load('fee_account.yaml')
    assert config.fee_account == CAROL
    assert config.marketplace.fee_percent == 5


async def test_env_substitution(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('FEE_PERCENT', '3')
    monkeypatch.setenv('EVENTS_PATH', '/tmp/market/events.jsonl')

    config = _load('jsonl.yaml')

    assert config.marketplace.fee_percent == 3
    assert config.events == JsonLinesEventsConfig(kind='jsonl', path='/tmp/market/events.jsonl')
    assert config.environment == {'FEE_PERCENT': '3', 'EVENTS_PATH': '/tmp/market/events.jsonl'}


async def test_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('FEE_PERCENT', raising=False)

    config_json, environment = NftMarketYAMLConfig.load([ROOT_CONFIG], environment=True, unsafe=False)

    assert config_json['marketplace']['fee_percent'] == 1
    assert environment == {'FEE_PERCENT': '1'}


async def test_events_kinds() -> None:
    config = _load('jsonl.yaml')
    assert config.events_kind == EventLogKind.jsonl

    config.events = DatabaseEventsConfig(kind='database')
    assert config.events_kind == EventLogKind.database
    assert config.events.url == 'sqlite://:memory:'


@pytest.mark.parametrize(
    ('name', 'match'),
    (
        ('bad_spec_version.yaml', 'Incompatible spec version'),
        ('same_address.yaml', 'different addresses'),
        ('invalid.yaml', 'Config validation failed'),
    ),
)
async def test_invalid(name: str, match: str) -> None:
    with pytest.raises(ConfigurationError, match=match):
        _load(name)


async def test_validation_error_paths() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        _load('invalid.yaml')

    assert '- registry.owner:' in exc_info.value.msg
    assert '- marketplace.fee_percent:' in exc_info.value.msg


async def test_missing_file() -> None:
    with pytest.raises(ConfigurationError, match='is missing'):
        NftMarketConfig.load([Path('missing.yaml')])


async def test_set_up_logging() -> None:
    config = _load()
    config.set_up_logging()
    assert logging.getLogger('nftmarket').level == logging.WARNING

    config.logging = {'nftmarket.marketplace': 'debug', 'tortoise': logging.ERROR}
    config.set_up_logging()
    assert logging.getLogger('nftmarket.marketplace').level == logging.DEBUG
    assert logging.getLogger('tortoise').level == logging.ERROR

    with pytest.raises(ConfigurationError, match='Invalid logging level'):
        _load('bad_logging.yaml').set_up_logging()


async def test_dump() -> None:
    config = _load('fee_account.yaml')

    dumped = config.dump()

    assert 'spec_version: \'1.0\'' in dumped or 'spec_version: "1.0"' in dumped
    assert f'fee_account: \'{CAROL}\'' in dumped or f'fee_account: {CAROL}' in dumped
    assert 'prometheus' not in dumped
    assert 'kind: memory' in dumped
