import pytest

from nftmarket.exceptions import NotFoundError
from nftmarket.exceptions import NotOwnerError
from nftmarket.exceptions import UnauthorizedError
from nftmarket.registry import TokenRegistry
from tests import ALICE
from tests import BOB
from tests import CAROL
from tests import URI


async def test_name_and_symbol(nft: TokenRegistry) -> None:
    assert nft.name == 'DApp NFT'
    assert nft.symbol == 'DAPP'
    assert nft.token_count == 0


async def test_mint_tracks_each_token(nft: TokenRegistry) -> None:
    assert await nft.mint(URI, ALICE) == 1
    assert nft.token_count == 1
    assert nft.balance_of(ALICE) == 1
    assert nft.owner_of(1) == ALICE
    assert nft.token_uri(1) == URI

    assert await nft.mint('ipfs://second', BOB) == 2
    assert nft.token_count == 2
    assert nft.balance_of(BOB) == 1
    assert nft.owner_of(2) == BOB
    assert nft.token_uri(2) == 'ipfs://second'


async def test_unknown_token(nft: TokenRegistry) -> None:
    await nft.mint(URI, ALICE)

    for token_id in (0, 2):
        with pytest.raises(NotFoundError) as exc_info:
            nft.owner_of(token_id)
        assert exc_info.value.reason == "Token doesn't exist"

        with pytest.raises(NotFoundError):
            nft.token_uri(token_id)


async def test_get_token_returns_copy(nft: TokenRegistry) -> None:
    await nft.mint(URI, ALICE)

    token = nft.get_token(1)
    token.owner = BOB

    assert nft.owner_of(1) == ALICE


async def test_transfer_by_owner(nft: TokenRegistry) -> None:
    await nft.mint(URI, ALICE)

    await nft.transfer_from(1, ALICE, BOB, ALICE)

    assert nft.owner_of(1) == BOB
    assert nft.balance_of(ALICE) == 0
    assert nft.balance_of(BOB) == 1


async def test_transfer_requires_approval(nft: TokenRegistry) -> None:
    await nft.mint(URI, ALICE)

    with pytest.raises(UnauthorizedError) as exc_info:
        await nft.transfer_from(1, ALICE, BOB, BOB)
    assert exc_info.value.reason == 'Caller is not owner nor approved'
    assert nft.owner_of(1) == ALICE

    await nft.set_approval_for_all(ALICE, BOB, True)
    await nft.transfer_from(1, ALICE, CAROL, BOB)
    assert nft.owner_of(1) == CAROL


async def test_transfer_from_incorrect_owner(nft: TokenRegistry) -> None:
    await nft.mint(URI, ALICE)
    await nft.set_approval_for_all(CAROL, BOB, True)

    with pytest.raises(NotOwnerError) as exc_info:
        await nft.transfer_from(1, CAROL, BOB, BOB)
    assert exc_info.value.reason == 'Transfer from incorrect owner'

    assert nft.owner_of(1) == ALICE
    assert nft.balance_of(ALICE) == 1
    assert nft.balance_of(CAROL) == 0


async def test_transfer_unknown_token(nft: TokenRegistry) -> None:
    with pytest.raises(NotFoundError):
        await nft.transfer_from(1, ALICE, BOB, ALICE)


async def test_approval_for_all_is_idempotent(nft: TokenRegistry) -> None:
    assert nft.is_approved_for_all(ALICE, BOB) is False

    for _ in range(3):
        await nft.set_approval_for_all(ALICE, BOB, True)
        assert nft.is_approved_for_all(ALICE, BOB) is True

    await nft.set_approval_for_all(ALICE, BOB, False)
    assert nft.is_approved_for_all(ALICE, BOB) is False

    # NOTE: Approval is directional
    assert nft.is_approved_for_all(BOB, ALICE) is False
