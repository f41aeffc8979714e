import logging
from collections.abc import Iterator

import pytest
from pythonjsonlogger import jsonlogger

from nftmarket import env
from nftmarket.sys import set_up_logging


@pytest.fixture
def root_handlers() -> Iterator[list[logging.Handler]]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield handlers
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)


def test_set_up_logging(root_handlers: list[logging.Handler]) -> None:
    set_up_logging()

    (handler,) = [h for h in logging.getLogger().handlers if h not in root_handlers]
    assert not isinstance(handler.formatter, jsonlogger.JsonFormatter)
    assert logging.getLogger('tortoise').level == logging.WARNING
    assert logging.getLogger('aiosqlite').level == logging.WARNING


def test_set_up_json_logging(root_handlers: list[logging.Handler], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(env, 'JSON_LOG', True)

    set_up_logging()

    (handler,) = [h for h in logging.getLogger().handlers if h not in root_handlers]
    assert isinstance(handler.formatter, jsonlogger.JsonFormatter)
    record = logging.LogRecord('nftmarket', logging.INFO, __file__, 1, 'Item #%s offered', (1,), None)
    assert '"message": "Item #1 offered"' in handler.format(record).replace('":"', '": "')
