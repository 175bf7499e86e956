"""In-process publish/subscribe for stream events."""

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Union

import structlog

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]


class EventBus:
    """
    Channel-keyed event dispatch.

    Handlers run in subscription order and each event is fully delivered
    before publish returns, so events reach every subscriber in arrival
    order. A failing handler is logged and does not stop delivery to the
    rest.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], bool]:
        """
        Register a plain or async handler on a channel.

        Returns:
            A callable that removes this subscription
        """
        self._handlers[channel].append(handler)
        return lambda: self.unsubscribe(channel, handler)

    def unsubscribe(self, channel: str, handler: Handler) -> bool:
        """Remove a handler; False if it was not subscribed."""
        handlers = self._handlers.get(channel)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def handler_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, ()))

    async def publish(self, channel: str, event: Any) -> int:
        """
        Deliver an event to every handler of a channel.

        Returns:
            Number of handlers that completed without raising
        """
        delivered = 0
        for handler in list(self._handlers.get(channel, ())):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    channel=channel,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    exc_info=True
                )
        return delivered
