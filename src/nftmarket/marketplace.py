import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from copy import copy

from nftmarket.events import EventLog
from nftmarket.events import MemoryEventLog
from nftmarket.exceptions import AlreadySoldError
from nftmarket.exceptions import FrameworkException
from nftmarket.exceptions import InsufficientPaymentError
from nftmarket.exceptions import InvalidPriceError
from nftmarket.exceptions import NotFoundError
from nftmarket.exceptions import RevertError
from nftmarket.fees import get_fee
from nftmarket.fees import get_total_price
from nftmarket.fees import split_payment
from nftmarket.ledger import Ledger
from nftmarket.models import Address
from nftmarket.models import BoughtEvent
from nftmarket.models import FeeConfig
from nftmarket.models import Listing
from nftmarket.models import OfferedEvent
from nftmarket.prometheus import Metrics
from nftmarket.registry import TokenRegistry

_logger = logging.getLogger(__name__)


@contextmanager
def _track(operation: str) -> Iterator[None]:
    try:
        yield
    except RevertError as e:
        _logger.info('`%s` rejected: %s', operation, e.reason)
        Metrics.set_operation_failed(operation, e)
        raise


class Marketplace:
    """Escrow marketplace for tokens of one or more registries.

    A listed token is held by the marketplace address until the listing is purchased. Listings are never
    removed; a purchased listing stays in `items` with `sold` flag set.

    All mutating operations are serialized with a per-instance lock: listing ids are gap-free and no
    operation observes a half-settled listing.
    """

    def __init__(
        self,
        address: Address,
        deployer: Address,
        fee_percent: int,
        ledger: Ledger,
        fee_account: Address | None = None,
        events: EventLog | None = None,
    ) -> None:
        if fee_percent < 0:
            raise ValueError('Fee percent must be non-negative')

        self.address = address
        self.deployer = deployer
        self._fee = FeeConfig(
            fee_account=fee_account or deployer,
            fee_percent=fee_percent,
        )
        self._ledger = ledger
        self._events = events or MemoryEventLog()

        self._items: dict[int, Listing] = {}
        self._registries: dict[Address, TokenRegistry] = {}
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f'<Marketplace {self.address} fee={self.fee_percent}%>'

    @property
    def fee_account(self) -> Address:
        return self._fee.fee_account

    @property
    def fee_percent(self) -> int:
        return self._fee.fee_percent

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def events(self) -> EventLog:
        return self._events

    def items(self, item_id: int) -> Listing:
        """Copy of the listing; purchased listings are kept as history"""
        return copy(self._get_item(item_id))

    def get_total_price(self, item_id: int) -> int:
        return get_total_price(self._get_item(item_id).price, self.fee_percent)

    async def make_item(
        self,
        nft: TokenRegistry,
        token_id: int,
        price: int,
        seller: Address,
    ) -> int:
        """Take the token into escrow and offer it for `price`; returns the new item id"""
        with _track('make_item'):
            async with self._lock:
                if price <= 0:
                    raise InvalidPriceError(price)
                known = self._registries.get(nft.address)
                if known is not None and known is not nft:
                    raise FrameworkException(f'Another registry is already known under `{nft.address}` address')

                await nft.transfer_from(token_id, seller, self.address, seller)

                self._registries[nft.address] = nft
                item_id = self.item_count + 1
                self._items[item_id] = Listing(
                    item_id=item_id,
                    nft=nft.address,
                    token_id=token_id,
                    price=price,
                    seller=seller,
                )
                event = await self._events.append(
                    OfferedEvent(
                        item_id=item_id,
                        nft=nft.address,
                        token_id=token_id,
                        price=price,
                        seller=seller,
                    )
                )

        _logger.info('Item #%s offered: %s #%s for %s by `%s`', item_id, nft.symbol, token_id, price, seller)
        Metrics.set_item_listed()
        await self._events.publish(event)
        return item_id

    async def purchase_item(
        self,
        item_id: int,
        payment: int,
        buyer: Address,
    ) -> None:
        """Buy the listing paying at least the total price.

        Seller gets the item price, fee account gets the rest of the payment including any overpayment.
        Payouts and token transfer are applied together or not at all.
        """
        with _track('purchase_item'):
            async with self._lock:
                item = self._get_item(item_id)
                if item.sold:
                    raise AlreadySoldError(item_id)
                total_price = get_total_price(item.price, self.fee_percent)
                if payment < total_price:
                    raise InsufficientPaymentError(item_id, payment, total_price)

                nft = self._registries[item.nft]
                seller_amount, fee_amount = split_payment(item.price, payment)

                async with self._ledger.transaction():
                    self._ledger.transfer(buyer, item.seller, seller_amount)
                    self._ledger.transfer(buyer, self.fee_account, fee_amount)
                    await nft.transfer_from(item.token_id, self.address, buyer, self.address)
                item.sold = True

                event = await self._events.append(
                    BoughtEvent(
                        item_id=item_id,
                        nft=item.nft,
                        token_id=item.token_id,
                        price=item.price,
                        seller=item.seller,
                        buyer=buyer,
                    )
                )

        _logger.info(
            'Item #%s bought by `%s` for %s, market fee %s', item_id, buyer, payment, get_fee(item.price, self.fee_percent)
        )
        Metrics.set_item_sold(seller_amount, fee_amount)
        await self._events.publish(event)

    def _get_item(self, item_id: int) -> Listing:
        # NOTE: Item ids are sequential without gaps; range check is enough
        if not 0 < item_id <= self.item_count:
            raise NotFoundError('Item', item_id)
        return self._items[item_id]
