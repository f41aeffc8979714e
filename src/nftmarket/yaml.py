"""This module contains YAML-related utilities used in `nftmarket.config` and `nftmarket.scenario` modules.

Tasks performed before validation:

- Environment variables substitution (e.g. `${FOO}` -> `bar`)
- Merging config from multiple files (currently, only first level deep)
"""

from __future__ import annotations

import logging
import re
from io import StringIO
from os import environ as env
from typing import TYPE_CHECKING
from typing import Any

from ruamel.yaml import YAML

from nftmarket.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

# NOTE: ${VARIABLE:-default} | ${VARIABLE}
ENV_VARIABLE_REGEX = r'\$\{(?P<var_name>[\w]+)(?:\:\-(?P<default_value>.*?))?\}'


_logger = logging.getLogger(__name__)

yaml_loader = YAML(typ='safe')

yaml_dumper = YAML()
yaml_dumper.default_flow_style = False
yaml_dumper.indent(mapping=2, sequence=4, offset=2)


def exclude_none(config_json: Any) -> Any:
    if isinstance(config_json, list | tuple):
        return [exclude_none(i) for i in config_json if i is not None]
    if isinstance(config_json, dict):
        return {k: exclude_none(v) for k, v in config_json.items() if v is not None}
    return config_json


def filter_comments(line: str) -> bool:
    return '#' not in line or line.lstrip()[0] != '#'


def read_yaml(path: Path) -> str:
    _logger.debug('Loading YAML file `%s`', path)
    if not path.is_file():
        raise ConfigurationError(f'File `{path}` is missing.')

    try:
        with path.open() as file:
            return ''.join(filter(filter_comments, file.readlines()))
    except OSError as e:
        raise ConfigurationError(f'File `{path}` is not readable: {e}') from e


def dump(value: dict[str, Any]) -> str:
    value = exclude_none(value)
    buffer = StringIO()
    yaml_dumper.dump(value, buffer)
    return buffer.getvalue()


def substitute_env_variables(
    config_yaml: str,
    unsafe: bool,
) -> tuple[str, dict[str, str]]:
    _logger.debug('Substituting environment variables')
    environment: dict[str, str] = {}

    for match in re.finditer(ENV_VARIABLE_REGEX, config_yaml):
        variable, default_value = match.group('var_name'), match.group('default_value')

        if unsafe:
            value = env.get(variable, default_value)
            # NOTE: Don't fail on ''
            if value is None:
                raise ConfigurationError(f'Environment variable `{variable}` is not set')
        else:
            value = default_value or ''

        environment[variable] = value
        placeholder = match.group(0)
        config_yaml = config_yaml.replace(placeholder, value)

    return config_yaml, environment


def load(path: Path) -> Any:
    """Load single YAML document without any preprocessing"""
    return yaml_loader.load(read_yaml(path))


class NftMarketYAMLConfig(dict[str, Any]):
    @classmethod
    def load(
        cls,
        paths: list[Path],
        environment: bool = True,
        unsafe: bool = False,
    ) -> tuple[NftMarketYAMLConfig, dict[str, str]]:

        config = cls()
        config_environment: dict[str, str] = {}

        for path in paths:
            path_yaml = read_yaml(path)

            if environment:
                path_yaml, path_environment = substitute_env_variables(path_yaml, unsafe)
                config_environment.update(path_environment)

            path_json = yaml_loader.load(path_yaml)
            if not isinstance(path_json, dict):
                raise ConfigurationError(f'`{path}` must contain a mapping at the top level')
            config.update(path_json)

        return config, config_environment

    def dump(self) -> str:
        return dump(self)
