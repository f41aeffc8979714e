import logging
import sys
import warnings

import orjson
from pydantic_core import to_jsonable_python

from nftmarket import env

LOG_FORMAT = '%(levelname)-8s %(name)-24s %(message)s'
# NOTE: ORM and database driver loggers are noisy on INFO
QUIET_LOGGERS = ('tortoise', 'aiosqlite')


def _json_formatter() -> logging.Formatter:
    from pythonjsonlogger import jsonlogger

    return jsonlogger.JsonFormatter(  # type: ignore[no-untyped-call]
        json_serializer=lambda *a, **kw: orjson.dumps(*a, default=to_jsonable_python).decode(),  # type: ignore[misc]
        reserved_attrs=set(jsonlogger.RESERVED_ATTRS) - {'message', 'name', 'levelname', 'created'} | {'taskName'},
    )


def set_up_logging() -> None:
    """Install stdout handler on the root logger; JSON lines if `NFTMARKET_JSON_LOG` is set"""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(_json_formatter() if env.JSON_LOG else logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if env.DEBUG:
        logging.getLogger('nftmarket').setLevel(logging.DEBUG)


def set_up_process() -> None:
    """Route warnings to logging"""
    logging.captureWarnings(True)
    warnings.formatwarning = lambda msg, *a, **kw: str(msg)
