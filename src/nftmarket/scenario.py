"""Scenario files: a sequence of registry and marketplace operations to run against a fresh context.

```yaml
steps:
  - action: mint
    by: alice
    uri: ipfs://token
  - action: list
    seller: alice
    token_id: 1
    price: 2000
  - action: buy
    buyer: bob
    item_id: 1
    expect_error: InsufficientFundsError
```
"""

from __future__ import annotations

import logging
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Literal

from pydantic import ConfigDict
from pydantic import TypeAdapter
from pydantic import ValidationError
from pydantic.dataclasses import dataclass

from nftmarket import yaml
from nftmarket.context import MarketContext
from nftmarket.enums import ScenarioAction
from nftmarket.exceptions import ConfigurationError
from nftmarket.exceptions import RevertError
from nftmarket.exceptions import ScenarioFailedError

_logger = logging.getLogger(__name__)


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class DepositStep:
    action: Literal['deposit']
    account: str
    amount: int
    expect_error: str | None = None


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class MintStep:
    action: Literal['mint']
    by: str
    uri: str
    expect_error: str | None = None


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class ApproveStep:
    action: Literal['approve']
    owner: str
    operator: str
    approved: bool = True
    expect_error: str | None = None


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class ListStep:
    action: Literal['list']
    seller: str
    token_id: int
    price: int
    expect_error: str | None = None


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class BuyStep:
    """Purchase a listing; `payment` defaults to the total price"""

    action: Literal['buy']
    buyer: str
    item_id: int
    payment: int | None = None
    expect_error: str | None = None


StepU = DepositStep | MintStep | ApproveStep | ListStep | BuyStep


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class Scenario:
    steps: list[StepU] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> Scenario:
        try:
            return TypeAdapter(cls).validate_python(yaml.load(path))
        except ValidationError as e:
            raise ConfigurationError(f'Scenario `{path}` is invalid:\n\n{e}') from e


@dataclass(kw_only=True)
class StepResult:
    index: int
    action: ScenarioAction
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_step(ctx: MarketContext, step: StepU) -> Any:
    registry, marketplace = ctx.registry, ctx.marketplace

    if isinstance(step, DepositStep):
        ctx.ledger.deposit(step.account, step.amount)
        return ctx.ledger.balance_of(step.account)
    if isinstance(step, MintStep):
        return await registry.mint(step.uri, step.by)
    if isinstance(step, ApproveStep):
        await registry.set_approval_for_all(step.owner, step.operator, step.approved)
        return step.approved
    if isinstance(step, ListStep):
        return await marketplace.make_item(registry, step.token_id, step.price, step.seller)
    if isinstance(step, BuyStep):
        payment = step.payment
        if payment is None:
            payment = marketplace.get_total_price(step.item_id)
        await marketplace.purchase_item(step.item_id, payment, step.buyer)
        return payment
    raise NotImplementedError(step)


async def run_scenario(ctx: MarketContext, scenario: Scenario) -> list[StepResult]:
    """Run steps one by one; stop on the first unexpected outcome"""
    results: list[StepResult] = []

    for index, step in enumerate(scenario.steps, start=1):
        action = ScenarioAction(step.action)
        _logger.info('Step #%s: %s', index, action.value)
        try:
            result = await run_step(ctx, step)
        except RevertError as e:
            if step.expect_error != type(e).__name__:
                raise ScenarioFailedError(index, f'unexpected `{type(e).__name__}`: {e.reason}') from e
            results.append(StepResult(index=index, action=action, error=type(e).__name__))
            continue

        if step.expect_error:
            raise ScenarioFailedError(index, f'expected `{step.expect_error}`, but step succeeded')
        results.append(StepResult(index=index, action=action, result=result))

    return results
