"""Tests for event interpretation and the persona update service."""

import pytest

from config.constants import PERSONA_UPDATES_TOPIC, SIMULATION_EVENTS_TOPIC
from deepdive.entities.events import EventOutcome, SimulationEvent, SimulationEventType
from deepdive.services.persona_update import (
    ImpactCategory,
    PersonaUpdateService,
    calculate_update_confidence,
    get_event_impact_mapping,
    get_persona_update_service,
    summarize_impacts,
)


def participation(magnitude=1.0, outcome=EventOutcome.POSITIVE, tags=("community",)):
    return SimulationEvent(
        event_type=SimulationEventType.COMMUNITY_PARTICIPATION,
        details="Volunteered at the shelter",
        impact_tags=tags,
        outcome=outcome,
        magnitude=magnitude,
    )


class TestImpactMapping:
    def test_positive_participation(self):
        impacts = {i.trait: i for i in get_event_impact_mapping(participation())}

        assert impacts["agreeableness"].change == pytest.approx(0.02)
        assert impacts["agreeableness"].category == ImpactCategory.PERSONALITY
        assert impacts["universalism"].change == pytest.approx(0.015)
        assert impacts["benevolence"].category == ImpactCategory.VALUE

    def test_negative_outcome_reverses_direction(self):
        impacts = {i.trait: i.change for i in get_event_impact_mapping(
            participation(outcome=EventOutcome.NEGATIVE)
        )}
        assert impacts["agreeableness"] == pytest.approx(-0.01)

    def test_magnitude_scales_change(self):
        impacts = {i.trait: i.change for i in get_event_impact_mapping(participation(magnitude=0.5))}
        assert impacts["agreeableness"] == pytest.approx(0.01)

    def test_unset_outcome_and_magnitude(self):
        event = SimulationEvent(
            event_type=SimulationEventType.TECHNOLOGY_ADOPTION, details="Tried a new app"
        )
        impacts = {i.trait: i.change for i in get_event_impact_mapping(event)}
        assert impacts["openness"] == pytest.approx(0.015 * 0.3)

    def test_policy_support_keywords(self):
        event = SimulationEvent(
            event_type=SimulationEventType.POLICY_SUPPORT,
            details="Supported universal healthcare and public safety",
            outcome=EventOutcome.POSITIVE,
        )
        impacts = {i.trait: i.change for i in get_event_impact_mapping(event)}
        assert impacts == {
            "universalism": pytest.approx(0.02),
            "security": pytest.approx(0.015),
        }

    def test_policy_support_without_keywords_is_unmapped(self):
        event = SimulationEvent(
            event_type=SimulationEventType.POLICY_SUPPORT, details="Attended a town hall"
        )
        assert get_event_impact_mapping(event) == []


class TestConfidence:
    def test_strong_event(self):
        event = participation()
        confidence = calculate_update_confidence(event, get_event_impact_mapping(event))
        # (0.5 + 0.1) * 1.0 + 3 * 0.05
        assert confidence == pytest.approx(0.75)

    def test_zero_magnitude_counts_as_set(self):
        event = participation(magnitude=0.0)
        impacts = get_event_impact_mapping(event)
        assert all(i.change == 0.0 for i in impacts)
        confidence = calculate_update_confidence(event, impacts)
        assert confidence == pytest.approx(0.15)

    def test_confidence_is_capped(self):
        event = participation(tags=tuple(f"t{i}" for i in range(10)))
        assert calculate_update_confidence(event, get_event_impact_mapping(event)) == 1.0


class TestSummary:
    def test_summarize(self):
        impacts = get_event_impact_mapping(participation())
        assert summarize_impacts(impacts).startswith("agreeableness: +2.0%")


class TestPersonaUpdateService:
    def test_inactive_by_default(self, event_bus):
        service = PersonaUpdateService(event_bus=event_bus)

        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())

        assert service.get_agent_update_history("agent-1") == []
        assert event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC) == []
        service.destroy()

    def test_significant_event_produces_update(self, event_bus, persona_service):
        event = participation()
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", event)

        history = persona_service.get_agent_update_history("agent-1")
        assert len(history) == 1
        assert history[0].confidence_score >= 0.3
        assert history[0].source_event_id == event.event_id
        assert history[0].updated_traits["agreeableness"] == pytest.approx(0.02)
        assert history[0].updated_values["universalism"] == pytest.approx(0.015)

        published = event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC)
        assert len(published) == 1
        derived = published[0]
        assert derived.agent_id == "agent-1"
        assert derived.event.event_type == SimulationEventType.SOCIAL_INTERACTION
        assert derived.event.outcome == EventOutcome.POSITIVE
        assert derived.event.magnitude == pytest.approx(0.75)
        assert derived.event.impact_tags == ("persona_evolution", "dynamic_traits")
        assert derived.event.event_id.startswith("persona-update-")
        assert derived.metadata["source_event_id"] == event.event_id
        assert derived.metadata["source_event_type"] == "community_participation"
        assert "engine_id" not in derived.metadata

    def test_engine_id_is_passed_through(self, event_bus, persona_service):
        event_bus.publish(
            SIMULATION_EVENTS_TOPIC, "agent-1", participation(), metadata={"engine_id": "engine-a"}
        )

        derived = event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC)[0]
        assert derived.metadata["engine_id"] == "engine-a"

    def test_unmapped_event_is_ignored(self, event_bus, persona_service):
        event = SimulationEvent(event_type=SimulationEventType.POLICY_SUPPORT, details="nothing")
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", event)

        assert persona_service.get_agent_update_history("agent-1") == []
        assert event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC) == []

    def test_low_confidence_event_is_ignored(self, event_bus, persona_service):
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation(magnitude=0.1))

        assert persona_service.get_agent_update_history("agent-1") == []
        assert event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC) == []

    def test_threshold_is_inclusive(self, event_bus, persona_service):
        # 0.5 * 0.3 + 3 * 0.05 reaches the threshold
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation(magnitude=0.3, tags=()))

        assert len(persona_service.get_agent_update_history("agent-1")) == 1

    def test_persona_updates_do_not_loop(self, event_bus, persona_service):
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())

        assert len(event_bus.get_topic_messages(PERSONA_UPDATES_TOPIC)) == 2
        assert len(persona_service.get_agent_update_history("agent-1")) == 2

    def test_statistics(self, event_bus, persona_service):
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-2", participation())
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-2", participation())

        stats = persona_service.get_statistics()

        assert stats["total_updates"] == 3
        assert stats["agent_update_counts"] == {"agent-1": 1, "agent-2": 2}
        assert stats["average_confidence"] == pytest.approx(0.75)
        assert stats["is_active"] is True

    def test_destroy_unsubscribes_for_good(self, event_bus):
        service = PersonaUpdateService(event_bus=event_bus, active=True)
        service.destroy()
        service.set_active(True)

        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())

        assert service.is_active is False
        assert service.get_agent_update_history("agent-1") == []
        assert event_bus.get_statistics()["subscriber_counts"].get(SIMULATION_EVENTS_TOPIC, 0) == 0

    def test_failure_in_one_update_is_contained(self, event_bus, persona_service, monkeypatch):
        def broken(request):
            raise RuntimeError("boom")

        monkeypatch.setattr(persona_service, "build_update", broken)
        event_bus.publish(SIMULATION_EVENTS_TOPIC, "agent-1", participation())

        assert persona_service.get_agent_update_history("agent-1") == []

    def test_global_service_bound_to_global_bus(self):
        service = get_persona_update_service()
        assert service is get_persona_update_service()
        assert service.is_active is False
