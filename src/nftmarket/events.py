"""Observation log of marketplace events.

Events are appended after the state change they describe has been committed. Each appended event gets
a sequence number; sequence numbers start from 1 and have no gaps. Subscribers are notified after the
event is stored; subscriber failures are logged and never propagate to the marketplace.
"""

import asyncio
import logging
import os
from abc import ABC
from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Callable
from contextlib import AsyncExitStack
from dataclasses import replace
from pathlib import Path
from types import TracebackType
from typing import IO
from typing import Self
from typing import TypeVar

import orjson

from nftmarket.database import tortoise_wrapper
from nftmarket.exceptions import FrameworkException
from nftmarket.models import Event
from nftmarket.models import MarketEvent
from nftmarket.models import dump_event
from nftmarket.models import load_event

EventT = TypeVar('EventT', bound=MarketEvent)
SubscriberT = Callable[[MarketEvent], Awaitable[None]]

_logger = logging.getLogger(__name__)


class EventLog(ABC):
    def __init__(self) -> None:
        self._subscribers: list[SubscriberT] = []
        self._seq = 0
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def seq(self) -> int:
        """Sequence number of the last appended event"""
        return self._seq

    def subscribe(self, callback: SubscriberT) -> None:
        self._subscribers.append(callback)

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def append(self, event: EventT) -> EventT:
        """Store event durably; returns a copy with sequence number assigned"""
        async with self._lock:
            event = replace(event, seq=self._seq + 1)
            await self._write(event)
            self._seq = event.seq

        _logger.debug('Event #%s appended: %s', event.seq, event.kind.value)
        return event

    async def publish(self, event: MarketEvent) -> None:
        """Notify subscribers about already stored event"""
        for callback in self._subscribers:
            try:
                await callback(event)
            except Exception:
                _logger.exception('Subscriber `%s` failed to process event #%s', callback, event.seq)

    @abstractmethod
    async def read(self) -> list[MarketEvent]: ...

    @abstractmethod
    async def _write(self, event: MarketEvent) -> None: ...


class MemoryEventLog(EventLog):
    def __init__(self) -> None:
        super().__init__()
        self._events: list[MarketEvent] = []

    async def read(self) -> list[MarketEvent]:
        return list(self._events)

    async def _write(self, event: MarketEvent) -> None:
        self._events.append(event)


class JsonLinesEventLog(EventLog):
    """Append-only file, one JSON object per line"""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        self._file: IO[bytes] | None = None

    async def open(self) -> None:
        if self._path.exists():
            events = await self.read()
            self._seq = events[-1].seq if events else 0
        else:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        _logger.info('Writing events to `%s`, last seq is %s', self._path, self._seq)
        self._file = self._path.open('ab')

    async def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    async def read(self) -> list[MarketEvent]:
        if not self._path.exists():
            return []
        with self._path.open('rb') as file:
            return [load_event(orjson.loads(line)) for line in file if line.strip()]

    async def _write(self, event: MarketEvent) -> None:
        if self._file is None:
            raise FrameworkException('Event log is not open')
        line = orjson.dumps(dump_event(event)) + b'\n'
        await asyncio.to_thread(self._write_line, self._file, line)

    @staticmethod
    def _write_line(file: IO[bytes], line: bytes) -> None:
        file.write(line)
        file.flush()
        os.fsync(file.fileno())


class DatabaseEventLog(EventLog):
    """Events stored in `nftmarket_event` table via Tortoise ORM"""

    def __init__(self, url: str) -> None:
        super().__init__()
        self._url = url
        self._stack = AsyncExitStack()

    async def open(self) -> None:
        await self._stack.enter_async_context(tortoise_wrapper(self._url))
        last = await Event.all().order_by('-seq').first()
        self._seq = last.seq if last else 0
        _logger.info('Writing events to database, last seq is %s', self._seq)

    async def close(self) -> None:
        await self._stack.aclose()

    async def read(self) -> list[MarketEvent]:
        return [load_event(record.data) for record in await Event.all().order_by('seq')]

    async def _write(self, event: MarketEvent) -> None:
        await Event.create(
            seq=event.seq,
            kind=event.kind,
            item_id=event.item_id,
            data=dump_event(event),
        )
