"""
AMI event dispatch registry.

Maps an event type (the `Event` field of a packet) to an ordered list of
handlers, with a reserved wildcard bucket that sees every event. Handlers may
be plain callables or coroutine functions; both are run in place, one after
another, on the caller's task.

Example usage:
registry = EventRegistry()
registry.on("*", log_everything)
registry.on(["Hold", "Unhold"], hold_changed)
await registry.dispatch(packet)
"""

import inspect
import logging
import traceback
from typing import Any, Awaitable, Callable, Iterable, Optional, Self

from .packet import Packet
from ..exceptions import HandlerError

WILDCARD = "*"

EventHandler = Callable[[Packet], Optional[Awaitable[Any]]]


class EventRegistry:

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._handlers: dict[str, list[EventHandler]] = {WILDCARD: []}

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Append a handler for one event type, or for every event with '*'"""
        if not callable(handler):
            raise TypeError(f"Event handler must be callable, got {handler!r}")
        self._handlers.setdefault(event_type, []).append(handler)

    def on(self, events: str | Iterable[str], handler: EventHandler) -> Self:
        """Register a handler for one or more event types"""
        if isinstance(events, str):
            events = [events]
        for event_type in events:
            self.register(event_type, handler)
        return self

    def handlers_for(self, event_type: str) -> list[EventHandler]:
        """Wildcard handlers, then handlers for the exact type, in registration order"""
        specific = self._handlers.get(event_type, []) if event_type != WILDCARD else []
        return list(self._handlers[WILDCARD]) + list(specific)

    def event_types(self) -> list[str]:
        return [t for t, handlers in self._handlers.items() if t != WILDCARD and handlers]

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    async def dispatch(self, event: Packet) -> list[HandlerError]:
        """Run every matching handler. Failures are logged and returned, never raised."""
        event_type = event.get("Event", "")
        failures: list[HandlerError] = []
        for handler in self.handlers_for(event_type):
            try:
                result = handler(Packet(event))
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                error = HandlerError(event_type, handler, e)
                self.logger.error(str(error))
                self.logger.debug(traceback.format_exc())
                failures.append(error)
        return failures
