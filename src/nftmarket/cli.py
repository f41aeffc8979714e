# NOTE: All imports except the basic ones are very lazy in this module. Let's keep it that way.
import asyncio
import atexit
import logging
from collections.abc import Callable
from collections.abc import Coroutine
from contextlib import AsyncExitStack
from contextlib import suppress
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar
from typing import cast

import click
import uvloop

from nftmarket import __version__
from nftmarket import env
from nftmarket.sys import set_up_process

if TYPE_CHECKING:
    from nftmarket.config import NftMarketConfig

ROOT_CONFIG = 'nftmarket.yaml'

_logger = logging.getLogger(__name__)


def _get_paths(
    params: dict[str, Any],
) -> tuple[list[Path], list[Path]]:
    from nftmarket.exceptions import ConfigurationError

    config_args: list[str] = params.pop('config', []) or [ROOT_CONFIG]
    env_file_args: list[str] = params.pop('env_file', [])

    config_paths: list[Path] = []
    env_file_paths: list[Path] = []

    for arg in config_args:
        path = Path(arg)
        if path.is_dir():
            path = path / ROOT_CONFIG
        if not path.is_file():
            raise ConfigurationError(f'Config file not found: {path}')
        config_paths.append(path)

    for arg in env_file_args:
        path = Path(arg)
        if not path.is_file():
            raise ConfigurationError(f'Env file not found: {path}')
        env_file_paths.append(path)

    return config_paths, env_file_paths


def _load_env_files(env_file_paths: list[Path]) -> None:
    for path in env_file_paths:
        from dotenv import load_dotenv

        _logger.info('Applying env_file `%s`', path)
        load_dotenv(path, override=True)


def echo(message: str, err: bool = False, **styles: Any) -> None:
    with suppress(BrokenPipeError):
        click.secho(message, err=err, **styles)


def green_echo(message: str) -> None:
    echo(message, fg='green')


def _print_help_atexit(error: Exception) -> None:
    """Prints a helpful error message after the traceback"""
    from nftmarket.exceptions import Error

    def _print() -> None:
        if isinstance(error, Error):
            echo(error.help(), err=True)
        else:
            echo(Error.default_help(), err=True)

    atexit.register(_print)


WrappedCommandT = TypeVar('WrappedCommandT', bound=Callable[..., Coroutine[Any, Any, None]])


@dataclass
class CLIContext:
    config_paths: list[str]
    config: 'NftMarketConfig'


def _cli_wrapper(fn: WrappedCommandT) -> WrappedCommandT:
    @wraps(fn)
    def wrapper(ctx: click.Context, *args: Any, **kwargs: Any) -> None:
        try:
            uvloop.run(fn(ctx, *args, **kwargs))
        except (KeyboardInterrupt, asyncio.CancelledError):
            pass
        except Exception as e:
            if not env.TEST:
                _print_help_atexit(e)
            raise e

    return cast(WrappedCommandT, wrapper)


@click.group(context_settings={'max_content_width': 120})
@click.version_option(__version__)
@click.option(
    '--config',
    '-c',
    type=str,
    multiple=True,
    help='A path to nftmarket config.',
    default=[],
    metavar='PATH',
    envvar='NFTMARKET_CONFIG',
)
@click.option(
    '--env-file',
    '-e',
    type=str,
    multiple=True,
    help='A path to .env file containing `KEY=value` strings.',
    default=[],
    metavar='PATH',
    envvar='NFTMARKET_ENV_FILE',
)
@click.pass_context
@_cli_wrapper
async def cli(ctx: click.Context, config: list[str], env_file: list[str]) -> None:
    """Token registry and escrow marketplace"""
    set_up_process()

    from nftmarket.config import NftMarketConfig
    from nftmarket.sys import set_up_logging

    set_up_logging()

    config_paths, env_file_paths = _get_paths(ctx.params)
    # NOTE: Apply env files before loading the config
    _load_env_files(env_file_paths)

    _config = NftMarketConfig.load(
        paths=config_paths,
        environment=True,
        unsafe=True,
    )
    _config.set_up_logging()

    ctx.obj = CLIContext(
        config_paths=config,
        config=_config,
    )


@cli.command()
@click.argument('scenario', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
@_cli_wrapper
async def run(ctx: click.Context, scenario: Path) -> None:
    """Run scenario file against a fresh registry and marketplace.

    Prints listings, balances and emitted events when done.
    """
    from nftmarket.context import create_market_context
    from nftmarket.prometheus import Metrics
    from nftmarket.scenario import Scenario
    from nftmarket.scenario import run_scenario

    config: NftMarketConfig = ctx.obj.config
    scenario_obj = Scenario.load(scenario)

    if config.prometheus and not env.TEST:
        Metrics.enable(config.prometheus.host, config.prometheus.port)

    async with AsyncExitStack() as stack:
        market = await create_market_context(config, stack)
        results = await run_scenario(market, scenario_obj)

        for result in results:
            outcome = result.error or f'ok: {result.result}'
            echo(f'#{result.index:<3} {result.action.value:<8} {outcome}')

        echo('\nItems:')
        for item_id in range(1, market.marketplace.item_count + 1):
            item = market.marketplace.items(item_id)
            status = 'sold' if item.sold else 'listed'
            echo(f'  #{item.item_id} token #{item.token_id} price {item.price} seller {item.seller} [{status}]')

        echo('\nBalances:')
        for account, balance in sorted(market.ledger.balances.items()):
            echo(f'  {account}: {balance}')

        events = await market.events.read()
        green_echo(f'\n{len(results)} steps done, {len(events)} events emitted')


@cli.group()
@click.pass_context
@_cli_wrapper
async def config(ctx: click.Context) -> None:
    """Commands to manage nftmarket configuration."""
    pass


@config.command(name='export')
@click.pass_context
@_cli_wrapper
async def config_export(ctx: click.Context) -> None:
    """Print config after resolving all links and variables."""
    echo(ctx.obj.config.dump())


@config.command(name='env')
@click.pass_context
@_cli_wrapper
async def config_env(ctx: click.Context) -> None:
    """Print environment variables used in config."""
    for key, value in sorted(ctx.obj.config.environment.items()):
        echo(f'{key}={value}')
