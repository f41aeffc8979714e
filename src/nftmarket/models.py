import logging
from typing import Any
from typing import ClassVar

from pydantic import ConfigDict
from pydantic import TypeAdapter
from pydantic.dataclasses import dataclass
from pydantic_core import to_jsonable_python
from tortoise import fields
from tortoise.models import Model as TortoiseModel

from nftmarket.enums import EventKind

_logger = logging.getLogger(__name__)

# NOTE: Accounts and contracts are identified by plain address strings
Address = str


# ===> Dataclasses


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class Token:
    """Single entry of the token registry"""

    id: int
    owner: Address
    uri: str


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class Listing:
    """Marketplace record offering a token for sale at a fixed price

    :param item_id: Sequential listing id, starts from 1
    :param nft: Address of the token registry
    :param token_id: Token id in that registry
    :param price: Price in currency subunits, fee not included
    :param seller: Account that listed the token
    :param sold: Whether the listing has been purchased
    """

    item_id: int
    nft: Address
    token_id: int
    price: int
    seller: Address
    sold: bool = False


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class FeeConfig:
    """Marketplace fee settings, fixed at creation"""

    fee_account: Address
    fee_percent: int


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class OfferedEvent:
    """Emitted once a token has been put into escrow and listed"""

    kind: ClassVar[EventKind] = EventKind.offered

    item_id: int
    nft: Address
    token_id: int
    price: int
    seller: Address
    seq: int = 0


@dataclass(config=ConfigDict(extra='forbid'), kw_only=True)
class BoughtEvent:
    """Emitted once a listing has been settled"""

    kind: ClassVar[EventKind] = EventKind.bought

    item_id: int
    nft: Address
    token_id: int
    price: int
    seller: Address
    buyer: Address
    seq: int = 0


MarketEvent = OfferedEvent | BoughtEvent

_event_classes: dict[EventKind, type[MarketEvent]] = {
    EventKind.offered: OfferedEvent,
    EventKind.bought: BoughtEvent,
}


def dump_event(event: MarketEvent) -> dict[str, Any]:
    """Convert event to a JSON-compatible dict with `kind` key"""
    return {'kind': event.kind.value, **to_jsonable_python(event)}


def load_event(data: dict[str, Any]) -> MarketEvent:
    """Inverse of `dump_event`"""
    data = dict(data)
    kind = EventKind(data.pop('kind'))
    return TypeAdapter(_event_classes[kind]).validate_python(data)


# ===> Built-in Models (not versioned)


class Event(TortoiseModel):
    seq = fields.IntField(pk=True, generated=False)
    kind = fields.CharEnumField(EventKind)
    item_id = fields.IntField()
    data: dict[str, Any] = fields.JSONField()

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = 'nftmarket_event'
