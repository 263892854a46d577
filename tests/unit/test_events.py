from rental_repairs.core.events.domain_events import (
    EventCategory,
    RequestSubmitted,
    WorkerAssigned,
)
from rental_repairs.core.events.event_bus import EventBus
from rental_repairs.services.base.event_dispatcher import EventDispatcher


class FlakySink:
    def __init__(self, failures):
        self.failures = failures
        self.received = []

    def publish(self, event):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("sink unavailable")
        self.received.append(event)


def test_event_defaults():
    event = RequestSubmitted(entity_id="r-1", data={"code": "SUNSET-101-0001"})

    assert event.event_type == "RequestSubmitted"
    assert event.event_category == EventCategory.REQUEST
    payload = event.to_dict()
    assert payload["event_category"] == "request"
    assert payload["entity_type"] == "request"
    assert '"SUNSET-101-0001"' in event.to_json()


def test_bus_routes_by_type_and_wildcard():
    bus = EventBus()
    typed, everything = [], []
    bus.subscribe("WorkerAssigned", typed.append)
    bus.subscribe("*", everything.append)

    bus.publish(WorkerAssigned(entity_id="bob@example.com"))
    bus.publish(RequestSubmitted(entity_id="r-1"))

    assert [e.event_type for e in typed] == ["WorkerAssigned"]
    assert [e.event_type for e in everything] == ["WorkerAssigned", "RequestSubmitted"]
    assert bus.get_stats()["published"] == 2


def test_failing_handler_does_not_stop_delivery():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe("RequestSubmitted", broken)
    bus.subscribe("RequestSubmitted", received.append)
    bus.publish(RequestSubmitted(entity_id="r-1"))

    assert len(received) == 1


def test_unsubscribe():
    bus = EventBus()
    received = []
    bus.subscribe("RequestSubmitted", received.append)
    bus.unsubscribe("RequestSubmitted", received.append)

    bus.publish(RequestSubmitted(entity_id="r-1"))

    assert received == []


def test_dispatcher_retries_sink_failures():
    sink = FlakySink(failures=2)
    dispatcher = EventDispatcher(sink, max_retries=3)

    outcome = dispatcher.dispatch(RequestSubmitted(entity_id="r-1"))

    assert outcome.dispatched
    assert len(sink.received) == 1


def test_dispatcher_reports_exhausted_retries():
    dispatcher = EventDispatcher(FlakySink(failures=10), max_retries=2)

    result = dispatcher.dispatch_many([RequestSubmitted(entity_id="r-1"), WorkerAssigned(entity_id="w")])

    assert result.total == 2
    assert result.failed == 2
    assert result.success_rate == 0.0
    assert result.events[0].error == "sink unavailable"


def test_dispatcher_filters():
    sink = FlakySink(failures=0)
    dispatcher = EventDispatcher(sink)
    dispatcher.add_filter(lambda event: event.event_type != "WorkerAssigned")

    result = dispatcher.dispatch_many([RequestSubmitted(entity_id="r-1"), WorkerAssigned(entity_id="w")])

    assert result.successful == 1
    assert [e.event_type for e in sink.received] == ["RequestSubmitted"]
