from __future__ import annotations

import abc
import logging
from asyncio import Queue
from collections import defaultdict
from typing import Any, Callable, Dict, Iterator, List, Optional, Self, Type, TypeAlias

from smart_queue.tasks import BackgroundTask

logger = logging.getLogger(__name__)


class Event:
    _global_bus: Optional[EventBus] = None

    def __init__(self) -> None:
        self.handled = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    @classmethod
    def attach(cls, bus: EventBus):
        if Event._global_bus not in (None, bus):
            logger.warning("replacing attached bus %s with %s", Event._global_bus, bus)
        Event._global_bus = bus

    @classmethod
    def detach(cls, bus: EventBus):
        if Event._global_bus is not bus:
            logger.warning("bus %s is not the attached one, nothing to detach", bus)
            return
        Event._global_bus = None

    async def emit(self, eager: bool = True) -> Self:
        """Run the handlers now, or hand the event to the bus task.

        Without an attached bus the event is dropped with a warning.
        """
        bus = Event._global_bus
        if bus is None:
            logger.warning("%r emitted without an attached bus", self)
        elif eager:
            await bus.handle(self)
        else:
            bus.publish(self)
        return self


class _Stop(Event):
    pass


class AbstractHandler(abc.ABC):
    @abc.abstractmethod
    async def __call__(self, e: Any):
        pass


EventHandler: TypeAlias = AbstractHandler | Callable[..., Any]


class EventBus(BackgroundTask):
    def __init__(self) -> None:
        self.handlers: Dict[Type[Event], List[EventHandler]] = defaultdict(list)
        self.queue: Queue[Event] = Queue()

    def __len__(self) -> int:
        return self.queue.qsize()

    def subscribe(self, event_type: Type[Event], *handlers: EventHandler) -> Self:
        """Register handlers for `event_type` and every subclass of it."""
        registered = self.handlers[event_type]
        registered.extend(h for h in handlers if h not in registered)
        return self

    def handlers_for(self, event: Event) -> Iterator[EventHandler]:
        for event_type in type(event).__mro__:
            yield from self.handlers.get(event_type, [])

    def publish(self, *events: Event) -> None:
        # unbounded queue, publishers never wait on handlers
        for event in events:
            self.queue.put_nowait(event)

    async def handle(self, event: Event) -> None:
        for handler in self.handlers_for(event):
            await handler(event)
        event.handled = True

    async def drain(self) -> None:
        await self.queue.join()

    async def stop(self):
        self.publish(_Stop())
        await self.drain()

    async def __call__(self) -> None:
        Event.attach(self)
        try:
            while not isinstance(event := await self.queue.get(), _Stop):
                try:
                    await self.handle(event)
                except Exception:
                    logger.exception("handling %r failed", event)
                finally:
                    self.queue.task_done()
            self.queue.task_done()
        finally:
            Event.detach(self)
