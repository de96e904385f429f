"""Tests for the topic-based event bus."""

import pytest

from deepdive.core.event_bus import EventBus, get_event_bus, reset_event_bus
from deepdive.entities.events import SimulationEvent, SimulationEventType


def make_event(details="hello"):
    return SimulationEvent(event_type=SimulationEventType.SOCIAL_INTERACTION, details=details)


class TestPublish:
    def test_publish_without_subscribers_is_retained(self, event_bus):
        message = event_bus.publish("simulation-events", "agent-1", make_event())

        assert message is not None
        assert event_bus.history_size == 1
        assert event_bus.get_topic_messages("simulation-events") == [message]

    def test_message_carries_arguments(self, event_bus):
        event = make_event()
        message = event_bus.publish("t", "agent-7", event, metadata={"step": 3})

        assert message.topic == "t"
        assert message.agent_id == "agent-7"
        assert message.event is event
        assert message.metadata == {"step": 3}
        assert message.message_id.startswith("msg-")

    def test_message_ids_are_unique(self, event_bus):
        ids = {event_bus.publish("t", "a", make_event()).message_id for _ in range(50)}
        assert len(ids) == 50

    def test_handlers_called_in_subscription_order(self, event_bus):
        calls = []
        event_bus.subscribe("t", lambda m: calls.append("first"))
        event_bus.subscribe("t", lambda m: calls.append("second"))

        event_bus.publish("t", "a", make_event())

        assert calls == ["first", "second"]

    def test_handlers_only_see_their_topic(self, event_bus):
        seen = []
        event_bus.subscribe("a", seen.append)

        event_bus.publish("b", "agent-1", make_event())

        assert seen == []

    def test_failing_handler_does_not_stop_others(self, event_bus):
        calls = []

        def broken(message):
            raise RuntimeError("boom")

        event_bus.subscribe("t", broken)
        event_bus.subscribe("t", lambda m: calls.append(m.agent_id))

        event_bus.publish("t", "agent-1", make_event())

        assert calls == ["agent-1"]

    def test_inactive_bus_drops_messages(self, event_bus):
        calls = []
        event_bus.subscribe("t", calls.append)
        event_bus.set_active(False)

        assert event_bus.publish("t", "a", make_event()) is None
        assert calls == []
        assert event_bus.history_size == 0

    def test_handler_may_publish(self, event_bus):
        event_bus.subscribe("first", lambda m: event_bus.publish("second", m.agent_id, m.event))

        event_bus.publish("first", "a", make_event())

        assert len(event_bus.get_topic_messages("second")) == 1


class TestSubscribe:
    def test_unsubscribe_removes_handler(self, event_bus):
        calls = []
        unsubscribe = event_bus.subscribe("t", calls.append)

        unsubscribe()
        event_bus.publish("t", "a", make_event())

        assert calls == []

    def test_unsubscribe_twice_is_harmless(self, event_bus):
        calls = []
        handler = calls.append
        unsubscribe = event_bus.subscribe("t", handler)
        event_bus.subscribe("t", handler)

        unsubscribe()
        unsubscribe()
        event_bus.publish("t", "a", make_event())

        # The second registration survives
        assert len(calls) == 1

    def test_duplicate_registration_called_twice(self, event_bus):
        calls = []
        event_bus.subscribe("t", calls.append)
        event_bus.subscribe("t", calls.append)

        event_bus.publish("t", "a", make_event())

        assert len(calls) == 2


class TestHistory:
    def test_topic_messages_most_recent_oldest_first(self, event_bus):
        for i in range(5):
            event_bus.publish("t", "a", make_event(f"e{i}"))
        event_bus.publish("other", "a", make_event("x"))

        messages = event_bus.get_topic_messages("t", 3)

        assert [m.event.details for m in messages] == ["e2", "e3", "e4"]

    def test_topic_messages_non_positive_limit(self, event_bus):
        event_bus.publish("t", "a", make_event())
        assert event_bus.get_topic_messages("t", 0) == []

    def test_agent_history_across_topics(self, event_bus):
        event_bus.publish("t1", "agent-1", make_event())
        event_bus.publish("t2", "agent-1", make_event())
        event_bus.publish("t1", "agent-2", make_event())

        history = event_bus.get_agent_event_history("agent-1")

        assert [m.topic for m in history] == ["t1", "t2"]

    def test_batched_eviction(self, event_bus):
        for _ in range(1000):
            event_bus.publish("t", "a", make_event())
        assert event_bus.history_size == 1000

        event_bus.publish("t", "a", make_event("newest"))

        assert event_bus.history_size <= 900
        assert event_bus.get_topic_messages("t", 1)[0].event.details == "newest"

    def test_custom_limits(self):
        bus = EventBus(history_limit=10, eviction_batch=3)
        for _ in range(11):
            bus.publish("t", "a", make_event())
        assert bus.history_size == 7

    def test_clear_history(self, event_bus):
        event_bus.publish("t", "a", make_event())
        event_bus.clear_history()
        assert event_bus.history_size == 0


class TestStatistics:
    def test_statistics(self, event_bus):
        event_bus.subscribe("t", lambda m: None)
        event_bus.publish("t", "a", make_event())
        event_bus.publish("t", "a", make_event())
        event_bus.publish("u", "a", make_event())

        stats = event_bus.get_statistics()

        assert stats["total_messages"] == 3
        assert stats["subscriber_counts"] == {"t": 1}
        assert stats["topic_message_counts"] == {"t": 2, "u": 1}
        assert stats["is_active"] is True


class TestGlobalBus:
    def test_global_bus_is_shared(self):
        assert get_event_bus() is get_event_bus()

    def test_reset_replaces_bus(self):
        bus = get_event_bus()
        reset_event_bus()
        assert get_event_bus() is not bus


@pytest.mark.parametrize("limit", [1, 5, 50])
def test_topic_messages_at_most_limit(event_bus, limit):
    for _ in range(20):
        event_bus.publish("t", "a", make_event())
    assert len(event_bus.get_topic_messages("t", limit)) == min(limit, 20)
