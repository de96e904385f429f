"""Tests for the step clock and the random event producer."""

import numpy as np
import pytest

from deepdive.core.clock import SimulationClock, SimulationSpeed
from deepdive.core.event_producer import (
    EVENT_TEMPLATES,
    RandomEventProducer,
    outcome_for_satisfaction,
)
from deepdive.entities import UPDM, Agent, AgentType, Position
from deepdive.entities.events import EventOutcome, SimulationEvent, SimulationEventType
from deepdive.services.persona_update import get_event_impact_mapping


class TestSimulationClock:
    def test_steps_due(self):
        clock = SimulationClock(step_interval=0.25)

        assert clock.update(0.5) == 2
        assert clock.update(0.125) == 0
        assert clock.update(0.125) == 1
        assert clock.tick == 3
        assert clock.elapsed == pytest.approx(0.75)

    def test_cap_per_update(self):
        clock = SimulationClock(step_interval=0.25)
        assert clock.update(60.0) == 10

    def test_zero_interval_runs_at_cap(self):
        clock = SimulationClock(step_interval=0.0)
        assert clock.update(0.0) == 10

    def test_pause_and_resume(self):
        clock = SimulationClock(step_interval=0.25)
        clock.pause()
        assert clock.update(1.0) == 0
        assert clock.toggle_pause() is False
        assert clock.update(0.25) == 1

    def test_speed(self):
        clock = SimulationClock(step_interval=0.5)
        clock.set_speed(2.0)
        assert clock.update(0.5) == 2

        clock.set_speed(SimulationSpeed.PAUSED)
        assert clock.update(10.0) == 0

    def test_speed_is_bounded(self):
        clock = SimulationClock()
        clock.set_speed(50.0)
        assert clock.speed == 10.0
        clock.set_speed(-1.0)
        assert clock.speed == 0.0

    def test_reset(self):
        clock = SimulationClock(step_interval=0.25)
        clock.update(1.0)
        clock.reset()
        assert clock.tick == 0
        assert clock.elapsed == 0.0

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            SimulationClock(step_interval=-1.0)


def make_agent(satisfaction=0.7):
    return Agent(
        id="agent-1",
        type=AgentType.INDIVIDUAL,
        position=Position(0.0, 0.0),
        updm=UPDM.generate("agent-1", lambda: 0.5),
        philosophical_alignment="phil-utilitarianism",
        connections=["agent-2", "agent-3", "agent-4"],
        satisfaction_level=satisfaction,
    )


class TestRandomEventProducer:
    def test_probability_validated(self):
        with pytest.raises(ValueError):
            RandomEventProducer(1.5)

    def test_zero_probability_never_fires(self):
        producer = RandomEventProducer(0.0)
        rng = np.random.default_rng(0)
        assert all(producer(make_agent(), step, rng) is None for step in range(100))

    def test_event_shape(self):
        producer = RandomEventProducer(1.0)
        event = producer(make_agent(), 5, np.random.default_rng(1))

        assert event.details.endswith("(step 5)")
        assert event.participants[0] == "agent-1"
        assert 1 <= len(event.participants) <= 3
        assert set(event.participants[1:]) <= {"agent-2", "agent-3", "agent-4"}
        assert 0.3 <= event.magnitude < 1.0
        assert event.outcome == EventOutcome.POSITIVE
        assert event.impact_tags

    def test_reproducible_with_seed(self):
        producer = RandomEventProducer(0.5)

        def run(seed):
            rng = np.random.default_rng(seed)
            events = [producer(make_agent(), step, rng) for step in range(20)]
            return [e.event_type if e else None for e in events]

        assert run(3) == run(3)

    def test_policy_templates_are_mapped(self):
        for details in EVENT_TEMPLATES[SimulationEventType.POLICY_SUPPORT]:
            event = SimulationEvent(event_type=SimulationEventType.POLICY_SUPPORT, details=details)
            assert get_event_impact_mapping(event), details

    @pytest.mark.parametrize("satisfaction,outcome", [
        (0.9, EventOutcome.POSITIVE),
        (0.6, EventOutcome.POSITIVE),
        (0.5, EventOutcome.NEUTRAL),
        (0.4, EventOutcome.NEUTRAL),
        (0.1, EventOutcome.NEGATIVE),
    ])
    def test_outcome_for_satisfaction(self, satisfaction, outcome):
        assert outcome_for_satisfaction(satisfaction) == outcome
