from collections.abc import AsyncIterator

import pytest

from nftmarket.events import MemoryEventLog
from nftmarket.ledger import Ledger
from nftmarket.marketplace import Marketplace
from nftmarket.registry import TokenRegistry
from tests import ALICE
from tests import BOB
from tests import CAROL
from tests import DEPLOYER
from tests import ETHER
from tests import FEE_PERCENT
from tests import MARKETPLACE_ADDRESS
from tests import NFT_ADDRESS
from tests import URI


@pytest.fixture
def ledger() -> Ledger:
    return Ledger({account: 10_000 * ETHER for account in (DEPLOYER, ALICE, BOB, CAROL)})


@pytest.fixture
def events() -> MemoryEventLog:
    return MemoryEventLog()


@pytest.fixture
def nft() -> TokenRegistry:
    return TokenRegistry(NFT_ADDRESS)


@pytest.fixture
def marketplace(ledger: Ledger, events: MemoryEventLog) -> Marketplace:
    return Marketplace(
        address=MARKETPLACE_ADDRESS,
        deployer=DEPLOYER,
        fee_percent=FEE_PERCENT,
        ledger=ledger,
        events=events,
    )


@pytest.fixture
async def minted(nft: TokenRegistry) -> AsyncIterator[int]:
    """Alice mints a token and approves the marketplace to move it"""
    token_id = await nft.mint(URI, ALICE)
    await nft.set_approval_for_all(ALICE, MARKETPLACE_ADDRESS, True)
    yield token_id
