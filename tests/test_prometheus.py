import pytest

from nftmarket.exceptions import InvalidPriceError
from nftmarket.marketplace import Marketplace
from nftmarket.prometheus import Metrics
from nftmarket.prometheus import _failed_operations
from nftmarket.registry import TokenRegistry
from tests import ALICE
from tests import BOB
from tests import ETHER
from tests import URI


async def test_counters(marketplace: Marketplace, nft: TokenRegistry) -> None:
    before = Metrics.snapshot()

    token_id = await nft.mint(URI, ALICE)
    item_id = await marketplace.make_item(nft, token_id, ETHER, ALICE)
    await marketplace.purchase_item(item_id, 2 * ETHER, BOB)

    after = Metrics.snapshot()
    assert after['tokens_minted'] - before['tokens_minted'] == 1
    assert after['items_listed'] - before['items_listed'] == 1
    assert after['items_sold'] - before['items_sold'] == 1
    assert after['volume'] - before['volume'] == ETHER
    assert after['fees'] - before['fees'] == ETHER


async def test_failed_operations(marketplace: Marketplace, nft: TokenRegistry) -> None:
    counter = _failed_operations.labels(operation='make_item', reason='InvalidPriceError')
    before = counter._value.get()

    with pytest.raises(InvalidPriceError):
        await marketplace.make_item(nft, 1, 0, ALICE)

    assert counter._value.get() - before == 1
