import asyncio
import logging
from collections import defaultdict
from collections import deque
from collections.abc import AsyncIterator
from collections.abc import Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from nftmarket.exceptions import FrameworkException
from nftmarket.exceptions import InsufficientFundsError
from nftmarket.exceptions import PayoutRejectedError
from nftmarket.models import Address

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    sender: Address
    recipient: Address
    amount: int


class Ledger:
    """Native currency balances of accounts.

    Transfers are only possible inside `transaction()`: each one is validated when staged and applied
    on successful exit from the context, in the same order as staged. If the wrapped block raises,
    nothing is applied.
    """

    def __init__(self, balances: Mapping[Address, int] | None = None) -> None:
        self._balances: defaultdict[Address, int] = defaultdict(int, balances or {})
        self._rejecting: set[Address] = set()
        self._lock = asyncio.Lock()

        self._pending: deque[Transfer] | None = None
        self._owner: asyncio.Task[Any] | None = None
        self._deltas: defaultdict[Address, int] = defaultdict(int)

    def balance_of(self, account: Address) -> int:
        return self._balances[account]

    @property
    def balances(self) -> dict[Address, int]:
        return dict(self._balances)

    def deposit(self, account: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError('Deposit amount must be non-negative')
        self._balances[account] += amount
        _logger.debug('Deposited %s to `%s`', amount, account)

    def reject_payments(self, account: Address, rejected: bool = True) -> None:
        """Make account refuse (or accept again) incoming transfers"""
        if rejected:
            self._rejecting.add(account)
        else:
            self._rejecting.discard(account)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Stage transfers in the wrapped block, apply them all or none"""
        # NOTE: Lock is not reentrant; nested transaction in the same task would wait forever
        if self._pending is not None and self._owner is asyncio.current_task():
            raise FrameworkException('Transaction is already started')

        async with self._lock:
            self._pending = deque()
            self._owner = asyncio.current_task()
            try:
                yield
                self._commit()
            finally:
                self._pending = None
                self._owner = None
                self._deltas.clear()

    def transfer(self, sender: Address, recipient: Address, amount: int) -> None:
        if self._pending is None:
            raise FrameworkException('Transfers must be performed within `Ledger.transaction`')
        if self._owner is not asyncio.current_task():
            raise FrameworkException('Transaction is owned by another task')
        if amount < 0:
            raise ValueError('Transfer amount must be non-negative')

        available = self._balances[sender] + self._deltas[sender]
        if available < amount:
            raise InsufficientFundsError(sender, available, amount)
        if recipient in self._rejecting:
            raise PayoutRejectedError(recipient, amount)

        self._deltas[sender] -= amount
        self._deltas[recipient] += amount
        self._pending.append(Transfer(sender, recipient, amount))

    def _commit(self) -> None:
        """Apply pending transfers in the same order as they were added"""
        assert self._pending is not None
        while self._pending:
            transfer = self._pending.popleft()
            self._balances[transfer.sender] -= transfer.amount
            self._balances[transfer.recipient] += transfer.amount
            _logger.debug('Transferred %s from `%s` to `%s`', transfer.amount, transfer.sender, transfer.recipient)
