"""
Domain event dispatcher.

Publishes events drained from aggregates to the host's event sink. The
engine never delivers notifications itself.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from rental_repairs.core.events.domain_events import BaseDomainEvent
from rental_repairs.core.logging import get_logger
from rental_repairs.repositories.interfaces import EventSink


@dataclass
class DispatchedEvent:
    """Result of event dispatch operation."""

    event: BaseDomainEvent
    dispatched: bool
    error: Optional[str] = None
    dispatched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class DispatchResult:
    """Aggregated result of multiple event dispatches."""

    total: int
    successful: int
    failed: int
    events: List[DispatchedEvent] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return (self.successful / self.total * 100) if self.total > 0 else 0.0


class EventDispatcher:
    """
    Dispatches domain events to an event sink with:
    - Retry on sink failure
    - Event filtering
    """

    def __init__(
        self,
        sink: EventSink,
        max_retries: int = 3,
        retry_delay: float = 0.0,
    ):
        self.sink = sink
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._logger = get_logger("rental_repairs.services.EventDispatcher")
        self._filters: List[Callable[[BaseDomainEvent], bool]] = []

    def add_filter(self, predicate: Callable[[BaseDomainEvent], bool]) -> None:
        """Only events for which every filter returns True are dispatched."""
        self._filters.append(predicate)

    # -------------------------------------------------------------------------
    # Event Dispatching
    # -------------------------------------------------------------------------

    def dispatch(self, event: BaseDomainEvent, retry: bool = True) -> DispatchedEvent:
        if not all(f(event) for f in self._filters):
            self._logger.debug(
                f"Event filtered out: {event.event_type}",
                extra={"event_type": event.event_type}
            )
            return DispatchedEvent(event=event, dispatched=False, error="Filtered by dispatch filter")

        attempts = 0
        last_error = None
        max_attempts = self.max_retries if retry else 1

        while attempts < max_attempts:
            try:
                self.sink.publish(event)
                self._logger.debug(
                    f"Event dispatched: {event.event_type}",
                    extra={"event_type": event.event_type, "entity_id": event.entity_id},
                )
                return DispatchedEvent(event=event, dispatched=True)
            except Exception as e:
                attempts += 1
                last_error = str(e)
                self._logger.warning(
                    f"Event dispatch failed (attempt {attempts}/{max_attempts}): {e}",
                    extra={"event_type": event.event_type, "attempt": attempts},
                )
                if attempts < max_attempts and self.retry_delay:
                    time.sleep(self.retry_delay * attempts)

        self._logger.error(
            f"Failed to dispatch event after {attempts} attempts",
            extra={"event_type": event.event_type, "entity_id": event.entity_id},
        )
        return DispatchedEvent(event=event, dispatched=False, error=last_error)

    def dispatch_many(self, events: List[BaseDomainEvent], stop_on_error: bool = False) -> DispatchResult:
        dispatched_events = []
        successful = 0
        failed = 0

        for event in events:
            result = self.dispatch(event)
            dispatched_events.append(result)

            if result.dispatched:
                successful += 1
            else:
                failed += 1
                if stop_on_error:
                    break

        return DispatchResult(
            total=len(events),
            successful=successful,
            failed=failed,
            events=dispatched_events,
        )
