"""
In-process event bus.

Handlers run synchronously in subscription order. A failing handler is
logged and does not stop delivery to the remaining handlers.
"""
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

from rental_repairs.core.events.domain_events import BaseDomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BaseDomainEvent], Any]

ALL_EVENTS = "*"


class EventBus:
    """
    Event bus for domain events produced by the engine.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.published: List[BaseDomainEvent] = []

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """
        Subscribe a handler to an event type ("*" receives everything).
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Registered handler for event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)
            logger.debug(f"Unregistered handler for event type: {event_type}")

    def publish(self, event: BaseDomainEvent) -> None:
        """
        Publish an event to every matching handler.
        """
        self.published.append(event)
        handlers = self._handlers.get(event.event_type, []) + self._handlers.get(ALL_EVENTS, [])

        if not handlers:
            logger.debug(f"No handlers found for event type: {event.event_type}")
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler failed for {event.event_type}: {e}", exc_info=True)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "published": len(self.published),
            "registered_handlers": {
                event_type: len(handlers)
                for event_type, handlers in self._handlers.items()
            },
        }
