import textwrap
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from typing import ClassVar

tab = ('_' * 80) + '\n\n'


def unindent(text: str) -> str:
    """Remove indentation from text"""
    return textwrap.dedent(text).strip()


def format_help(help: str) -> str:
    """Format help text"""
    return tab + unindent(help) + '\n'


class FrameworkException(AssertionError, RuntimeError):
    pass


class Error(ABC, FrameworkException):
    """Base class for _known_ exceptions in this module.

    Instances of this class should have a nice help message explaining the error and how to fix it.
    """

    def __str__(self) -> str:
        if not self.__doc__:
            raise NotImplementedError(f'{self.__class__.__name__} has no docstring')
        return self.__doc__ + ' -> ' + ' '.join(str(arg) for arg in self.args)

    def help(self) -> str:
        """Return a string containing a help message for this error."""
        return format_help(self._help())

    @classmethod
    def default_help(cls) -> str:
        return format_help(
            """
                An unexpected error has occurred! Most likely it's a bug.

                Please, save the traceback and open an issue.
        """
        )

    @abstractmethod
    def _help(self) -> str: ...


class RevertError(Error):
    """Operation was rejected and had no effect"""

    # NOTE: Human-readable reason, same wording as the on-chain revert message
    reason: ClassVar[str]


@dataclass(repr=False)
class ConfigurationError(Error):
    """Config is invalid"""

    msg: str

    def _help(self) -> str:
        return f"""
            {self.msg}

            Check the `nftmarket.yaml` file and the environment variables it references.
        """


@dataclass(repr=False)
class InvalidPriceError(RevertError):
    """Listing price must be positive"""

    reason = 'Price must be greater than zero'

    price: int

    def _help(self) -> str:
        return f"""
            {self.reason}.

              price: {self.price}
        """


@dataclass(repr=False)
class UnauthorizedError(RevertError):
    """Caller can't move this token"""

    reason = 'Caller is not owner nor approved'

    token_id: int
    caller: str

    def _help(self) -> str:
        return f"""
            `{self.caller}` is neither the owner of token #{self.token_id} nor an approved operator.

            Call `set_approval_for_all` from the owner account first.
        """


@dataclass(repr=False)
class NotOwnerError(RevertError):
    """Token is owned by another account"""

    reason = 'Transfer from incorrect owner'

    token_id: int
    account: str

    def _help(self) -> str:
        return f"""
            `{self.account}` is not the current owner of token #{self.token_id}.
        """


@dataclass(repr=False)
class NotFoundError(RevertError):
    """Requested entity doesn't exist"""

    entity: str
    id: int

    @property
    def reason(self) -> str:  # type: ignore[override]
        return f"{self.entity} doesn't exist"

    def _help(self) -> str:
        return f"""
            {self.reason}.

              {self.entity.lower()} id: {self.id}
        """


@dataclass(repr=False)
class AlreadySoldError(RevertError):
    """Listing is closed"""

    reason = 'Item is already sold'

    item_id: int

    def _help(self) -> str:
        return f"""
            Item #{self.item_id} has been sold already; every listing can be purchased only once.
        """


@dataclass(repr=False)
class InsufficientPaymentError(RevertError):
    """Payment doesn't cover the total price"""

    reason = 'Not enough value sent to cover item price and market fee'

    item_id: int
    payment: int
    total_price: int

    def _help(self) -> str:
        return f"""
            {self.reason}.

              item id: {self.item_id}
              payment: {self.payment}
              total price: {self.total_price}

            Use `get_total_price` to find out the minimum payment.
        """


@dataclass(repr=False)
class InsufficientFundsError(RevertError):
    """Account balance is too low"""

    reason = 'Insufficient funds'

    account: str
    balance: int
    amount: int

    def _help(self) -> str:
        return f"""
            `{self.account}` balance is {self.balance}, but {self.amount} is required.
        """


@dataclass(repr=False)
class PayoutRejectedError(RevertError):
    """Recipient refused incoming funds"""

    reason = 'Transfer failed'

    account: str
    amount: int

    def _help(self) -> str:
        return f"""
            `{self.account}` rejected a payment of {self.amount}. The whole operation has been rolled back.
        """


@dataclass(repr=False)
class ScenarioFailedError(Error):
    """Scenario step didn't behave as expected"""

    index: int
    msg: str

    def _help(self) -> str:
        return f"""
            Step #{self.index} failed: {self.msg}

            Fix the scenario file or mark the step with `expect_error: <ErrorClassName>`.
        """
