"""In-process change notifications.

The store publishes one ``ChangeEvent`` per successful insert/update/delete.
Subscribers register per collection and get back a ``Subscription`` handle;
a handle goes idle -> subscribed -> torn_down and never comes back.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"

IDLE = "idle"
SUBSCRIBED = "subscribed"
TORN_DOWN = "torn_down"


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    kind: str
    record_id: Optional[int] = None

    def as_dict(self) -> dict:
        return {"collection": self.collection, "kind": self.kind, "id": self.record_id}


Callback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


class Subscription:
    def __init__(self, hub: "ChangeHub", collection: str, callback: Callback):
        self.hub = hub
        self.collection = collection
        self.callback = callback
        self.state = IDLE

    def unsubscribe(self) -> None:
        if self.state == SUBSCRIBED:
            self.hub._remove(self)
        self.state = TORN_DOWN


class ChangeHub:
    def __init__(self):
        self._subs: Dict[str, List[Subscription]] = {}

    def subscribe(self, collection: str, callback: Callback) -> Subscription:
        sub = Subscription(self, collection, callback)
        self._subs.setdefault(collection, []).append(sub)
        sub.state = SUBSCRIBED
        logger.debug("subscribed to %s", collection)
        return sub

    def subscribe_many(self, collections: Iterable[str], callback: Callback) -> List[Subscription]:
        return [self.subscribe(c, callback) for c in collections]

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.collection, [])
        if sub in subs:
            subs.remove(sub)
        logger.debug("unsubscribed from %s", sub.collection)

    def subscriber_count(self, collection: str) -> int:
        return len(self._subs.get(collection, []))

    async def publish(self, event: ChangeEvent) -> None:
        # copy: a callback may unsubscribe while we iterate
        for sub in list(self._subs.get(event.collection, [])):
            try:
                result = sub.callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("change callback failed for %s", event.collection)


class QueueSubscriber:
    """Bridges hub callbacks to an ``asyncio.Queue`` (used by the websocket)."""

    def __init__(self, hub: ChangeHub, collections: Iterable[str]):
        self.queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()
        self.subscriptions = hub.subscribe_many(collections, self.queue.put_nowait)

    async def get(self) -> ChangeEvent:
        return await self.queue.get()

    def close(self) -> None:
        for sub in self.subscriptions:
            sub.unsubscribe()
