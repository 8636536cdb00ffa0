from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, TypeVar

from carevoice.core.logging import get_logger
from carevoice.models.events import Event

logger = get_logger(__name__)

T = TypeVar("T", bound=Event)

Handler = Callable[[Any], Awaitable[None] | None]


class EventBus:
    """In-process publish/subscribe event bus.

    * Supports both async and sync handlers.
    * ``publish`` may be called from plain engine callbacks: sync handlers
      run inline, coroutine handlers are scheduled on the running loop.
    * A failing handler never prevents other handlers from running.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[Event], list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Subscribe / Unsubscribe
    # ------------------------------------------------------------------

    def subscribe(
        self,
        event_type: type[T],
        handler: Callable[[T], Awaitable[None] | None],
    ) -> None:
        """Register *handler* for *event_type*."""
        self._subscribers[event_type].append(handler)  # type: ignore[arg-type]
        logger.debug(
            "Subscribed handler %s to %s (total: %d)",
            getattr(handler, "__name__", repr(handler)),
            event_type.__name__,
            len(self._subscribers[event_type]),
        )

    def unsubscribe(
        self,
        event_type: type[T],
        handler: Callable[[T], Awaitable[None] | None],
    ) -> None:
        """Remove *handler* from *event_type*.  No-op if not found."""
        handlers = self._subscribers.get(event_type)
        if handlers is None:
            return
        try:
            handlers.remove(handler)  # type: ignore[arg-type]
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, event: Event) -> None:
        """Dispatch *event* to every handler registered for its type."""
        event_type = type(event)
        handlers = list(self._subscribers.get(event_type, []))

        if not handlers:
            logger.debug("Published %s with 0 subscribers", event_type.__name__)
            return

        logger.debug(
            "Publishing %s to %d subscriber(s)",
            event_type.__name__,
            len(handlers),
        )

        for handler in handlers:
            self._invoke_handler(handler, event)

    async def drain(self) -> None:
        """Wait for every coroutine handler scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Introspection / Cleanup
    # ------------------------------------------------------------------

    def get_subscriber_count(self, event_type: type[Event]) -> int:
        """Return the number of handlers registered for *event_type*."""
        return len(self._subscribers.get(event_type, []))

    def clear(self) -> None:
        """Remove **all** subscriptions."""
        self._subscribers.clear()
        logger.info("EventBus cleared all subscriptions")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _invoke_handler(self, handler: Handler, event: Event) -> None:
        """Call *handler* safely, catching and logging any exception."""
        name = getattr(handler, "__name__", repr(handler))
        try:
            result = handler(event)
        except Exception:
            logger.exception(
                "Handler %s raised while processing %s", name, type(event).__name__
            )
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "Dropping async handler %s for %s: no running event loop",
                name,
                type(event).__name__,
            )
            if inspect.iscoroutine(result):
                result.close()
            return

        task = loop.create_task(self._await_handler(name, result, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _await_handler(name: str, awaitable: Awaitable[None], event: Event) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception(
                "Handler %s raised while processing %s", name, type(event).__name__
            )
