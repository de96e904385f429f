"""Persona model (UPDM): Big Five traits plus Schwartz value system."""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config.constants import TRAIT_NAMES, VALUE_NAMES

INIT_EVIDENCE_TEXT = "Personality trait generated at simulation initialization"


def clamp_unit(value: float) -> float:
    """Clamp a score to [0, 1]."""
    return max(0.0, min(1.0, float(value)))


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class EvidenceSnippet:
    """A piece of evidence backing a trait score."""

    event_id: str
    text: str
    timestamp: str


@dataclass
class TraitScore:
    """Score for one personality trait with its supporting evidence."""

    score: float
    evidence_snippets: List[EvidenceSnippet] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.score = clamp_unit(self.score)

    def adjust(self, delta: float, evidence: EvidenceSnippet | None = None) -> float:
        """Shift the score by delta, clamped. Returns the new score."""
        self.score = clamp_unit(self.score + delta)
        if evidence is not None:
            self.evidence_snippets.append(evidence)
        return self.score


@dataclass
class PersonalityTraits:
    """Big Five personality traits."""

    openness: TraitScore
    conscientiousness: TraitScore
    extraversion: TraitScore
    agreeableness: TraitScore
    neuroticism: TraitScore

    def get(self, name: str) -> TraitScore:
        if name not in TRAIT_NAMES:
            raise KeyError(f"Unknown personality trait: {name}")
        return getattr(self, name)

    def scores(self) -> Dict[str, float]:
        return {name: getattr(self, name).score for name in TRAIT_NAMES}


@dataclass
class SchwartzValueSystem:
    """Ten Schwartz basic values, each in [0, 1]."""

    self_direction: float = 0.5
    stimulation: float = 0.5
    hedonism: float = 0.5
    achievement: float = 0.5
    power: float = 0.5
    security: float = 0.5
    conformity: float = 0.5
    tradition: float = 0.5
    benevolence: float = 0.5
    universalism: float = 0.5

    def __post_init__(self) -> None:
        for f in fields(self):
            setattr(self, f.name, clamp_unit(getattr(self, f.name)))

    def get(self, name: str) -> float:
        if name not in VALUE_NAMES:
            raise KeyError(f"Unknown Schwartz value: {name}")
        return getattr(self, name)

    def adjust(self, name: str, delta: float) -> float:
        """Shift one value by delta, clamped. Returns the new value."""
        new_value = clamp_unit(self.get(name) + delta)
        setattr(self, name, new_value)
        return new_value

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in VALUE_NAMES}


@dataclass
class UPDM:
    """
    Unified persona data model for one agent.

    Holds the five personality traits and ten Schwartz values. Every
    mutation goes through ``adjust_trait``/``adjust_value`` so scores
    stay within [0, 1].
    """

    user_id: str
    personality_traits: PersonalityTraits
    value_system: SchwartzValueSystem
    schema_version: str = "1.0"
    last_updated: str = field(default_factory=utc_now_iso)
    data_sources: List[str] = field(default_factory=lambda: ["simulation_initialization"])
    application_specific_data: Dict[str, Any] = field(
        default_factory=lambda: {"simulation_context": "social_future_modeling"}
    )

    @classmethod
    def generate(cls, user_id: str, draw: Callable[[], float]) -> "UPDM":
        """
        Build a persona whose scores come from ``draw``.

        Args:
            user_id: Owning agent id
            draw: Zero-argument callable returning a number in [0, 1]

        Returns:
            New UPDM with one ``init`` evidence snippet per trait
        """
        now = utc_now_iso()
        traits = PersonalityTraits(**{
            name: TraitScore(
                score=draw(),
                evidence_snippets=[EvidenceSnippet("init", INIT_EVIDENCE_TEXT, now)],
            )
            for name in TRAIT_NAMES
        })
        values = SchwartzValueSystem(**{name: draw() for name in VALUE_NAMES})
        return cls(
            user_id=user_id,
            personality_traits=traits,
            value_system=values,
            last_updated=now,
        )

    def adjust_trait(
        self, name: str, delta: float, evidence: EvidenceSnippet | None = None
    ) -> float:
        new_score = self.personality_traits.get(name).adjust(delta, evidence)
        self.last_updated = utc_now_iso()
        return new_score

    def adjust_value(self, name: str, delta: float) -> float:
        new_value = self.value_system.adjust(name, delta)
        self.last_updated = utc_now_iso()
        return new_value

    def all_scores(self) -> Dict[str, float]:
        """Trait and value scores in a single flat mapping."""
        return {**self.personality_traits.scores(), **self.value_system.as_dict()}

    def find_trait_evidence(self, event_id: str) -> Optional[EvidenceSnippet]:
        for name in TRAIT_NAMES:
            for snippet in self.personality_traits.get(name).evidence_snippets:
                if snippet.event_id == event_id:
                    return snippet
        return None
