import asyncio
import logging
from collections import defaultdict
from copy import copy

from nftmarket.exceptions import NotFoundError
from nftmarket.exceptions import NotOwnerError
from nftmarket.exceptions import UnauthorizedError
from nftmarket.models import Address
from nftmarket.models import Token
from nftmarket.prometheus import Metrics

DEFAULT_NAME = 'DApp NFT'
DEFAULT_SYMBOL = 'DAPP'

_logger = logging.getLogger(__name__)


class TokenRegistry:
    """Append-only ledger of non-fungible tokens and their owners.

    Token ids are allocated sequentially starting from 1 and never reused. Tokens are never burned;
    only the owner changes on transfer.
    """

    def __init__(
        self,
        address: Address,
        name: str = DEFAULT_NAME,
        symbol: str = DEFAULT_SYMBOL,
    ) -> None:
        self.address = address
        self.name = name
        self.symbol = symbol

        self._tokens: dict[int, Token] = {}
        self._balances: defaultdict[Address, int] = defaultdict(int)
        self._operators: dict[tuple[Address, Address], bool] = {}
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f'<TokenRegistry {self.symbol} {self.address}>'

    @property
    def token_count(self) -> int:
        return len(self._tokens)

    def get_token(self, token_id: int) -> Token:
        """Copy of the token entry; raises `NotFoundError` for ids never minted"""
        return copy(self._get_token(token_id))

    def owner_of(self, token_id: int) -> Address:
        return self._get_token(token_id).owner

    def token_uri(self, token_id: int) -> str:
        return self._get_token(token_id).uri

    def balance_of(self, owner: Address) -> int:
        return self._balances[owner]

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        return self._operators.get((owner, operator), False)

    async def mint(self, uri: str, by: Address) -> int:
        async with self._lock:
            token_id = self.token_count + 1
            self._tokens[token_id] = Token(id=token_id, owner=by, uri=uri)
            self._balances[by] += 1

        _logger.info('%s: minted token #%s to `%s`', self.symbol, token_id, by)
        Metrics.set_token_minted()
        return token_id

    async def set_approval_for_all(self, owner: Address, operator: Address, approved: bool) -> None:
        """Grant or revoke `operator` permission to move any token of `owner`; last write wins"""
        async with self._lock:
            self._operators[(owner, operator)] = approved
        _logger.debug('%s: `%s` operator approval for `%s` set to %s', self.symbol, operator, owner, approved)

    async def transfer_from(self, token_id: int, from_: Address, to: Address, by: Address) -> None:
        async with self._lock:
            token = self._get_token(token_id)
            if by != from_ and not self.is_approved_for_all(from_, by):
                raise UnauthorizedError(token_id, by)
            if token.owner != from_:
                raise NotOwnerError(token_id, from_)

            token.owner = to
            self._balances[from_] -= 1
            self._balances[to] += 1

        _logger.info('%s: token #%s transferred from `%s` to `%s`', self.symbol, token_id, from_, to)

    def _get_token(self, token_id: int) -> Token:
        token = self._tokens.get(token_id)
        if token is None:
            raise NotFoundError('Token', token_id)
        return token
