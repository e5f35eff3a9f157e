import inspect
from typing import Any, Awaitable, Callable, List, Union

from .utils import get_logger

Subscriber = Callable[[], Union[None, Awaitable[Any]]]


class Subscription:
    def __init__(self, coordinator: "SyncCoordinator", callback: Subscriber) -> None:
        self._coordinator = coordinator
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._coordinator._remove(self)


class SyncCoordinator:
    """Payload-less "files changed" broadcast.

    Subscribers run one after another in registration order, each doing its
    own full reload. A failing subscriber is logged and the rest still run.
    """

    def __init__(self, name: str = "files-changed") -> None:
        self.name = name
        self.logger = get_logger("pipeshelf.sync")
        self._subscriptions: List[Subscription] = []
        self._closed = False
        self.broadcast_count = 0

    def subscribe(self, callback: Subscriber) -> Subscription:
        if self._closed:
            raise RuntimeError(f"Coordinator {self.name} is closed")
        sub = Subscription(self, callback)
        self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def broadcast(self) -> None:
        if self._closed:
            self.logger.debug("Broadcast %s ignored: closed", self.name)
            return
        self.broadcast_count += 1
        # Snapshot: subscriptions added during delivery wait for the next broadcast.
        subs = list(self._subscriptions)
        self.logger.debug("Broadcast %s #%d to %d subscriber(s)", self.name, self.broadcast_count, len(subs))
        for sub in subs:
            if not sub.active:
                continue
            try:
                result = sub.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self.logger.warning("Subscriber %r failed on %s: %s", sub.callback, self.name, exc)

    def close(self) -> None:
        self._closed = True
        for sub in list(self._subscriptions):
            sub.active = False
        self._subscriptions.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"<SyncCoordinator {self.name} subscribers={len(self._subscriptions)} closed={self._closed}>"
