"""Prometheus metrics of the token registry and the marketplace

Counters are process-wide; use `Metrics.snapshot` to read their current values in reports and tests.
"""

import logging

from prometheus_client import Counter
from prometheus_client import start_http_server

_logger = logging.getLogger(__name__)

_tokens_minted = Counter(
    'nftmarket_tokens_minted_total',
    'Number of minted tokens',
)
_items_listed = Counter(
    'nftmarket_items_listed_total',
    'Number of created marketplace listings',
)
_items_sold = Counter(
    'nftmarket_items_sold_total',
    'Number of settled marketplace listings',
)
_volume = Counter(
    'nftmarket_volume_total',
    'Sum of listing prices paid to sellers, in subunits',
)
_fees = Counter(
    'nftmarket_fees_total',
    'Sum of amounts paid to fee accounts, in subunits',
)
_failed_operations = Counter(
    'nftmarket_failed_operations_total',
    'Number of rejected operations',
    ['operation', 'reason'],
)


class Metrics:
    @classmethod
    def enable(cls, host: str, port: int) -> None:
        _logger.info('Starting Prometheus server on %s:%s', host, port)
        start_http_server(port, host)

    @classmethod
    def set_token_minted(cls) -> None:
        _tokens_minted.inc()

    @classmethod
    def set_item_listed(cls) -> None:
        _items_listed.inc()

    @classmethod
    def set_item_sold(cls, price: int, fee: int) -> None:
        _items_sold.inc()
        _volume.inc(price)
        _fees.inc(fee)

    @classmethod
    def set_operation_failed(cls, operation: str, error: Exception) -> None:
        _failed_operations.labels(operation=operation, reason=type(error).__name__).inc()

    @classmethod
    def snapshot(cls) -> dict[str, float]:
        return {
            'tokens_minted': _tokens_minted._value.get(),
            'items_listed': _items_listed._value.get(),
            'items_sold': _items_sold._value.get(),
            'volume': _volume._value.get(),
            'fees': _fees._value.get(),
        }
