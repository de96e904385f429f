"""Centralized constants for the Deep Dive simulation."""

# Event bus topics
SIMULATION_EVENTS_TOPIC = "simulation-events"
PERSONA_UPDATES_TOPIC = "persona-updates"

# Philosophy variable ids
PHIL_UTILITARIANISM = "phil-utilitarianism"
PHIL_DEONTOLOGY = "phil-deontology"
PHIL_EXISTENTIALISM = "phil-existentialism"
PHIL_COMMUNITARIANISM = "phil-communitarianism"

PHILOSOPHIES = [
    PHIL_UTILITARIANISM,
    PHIL_DEONTOLOGY,
    PHIL_EXISTENTIALISM,
    PHIL_COMMUNITARIANISM,
]

# Persona dimensions
TRAIT_NAMES = [
    "openness",
    "conscientiousness",
    "extraversion",
    "agreeableness",
    "neuroticism",
]

VALUE_NAMES = [
    "self_direction",
    "stimulation",
    "hedonism",
    "achievement",
    "power",
    "security",
    "conformity",
    "tradition",
    "benevolence",
    "universalism",
]

# Personality contribution to satisfaction (neuroticism is inverted)
PERSONALITY_SATISFACTION_WEIGHTS = {
    "openness": 0.2,
    "conscientiousness": 0.2,
    "extraversion": 0.15,
    "agreeableness": 0.25,
    "neuroticism": 0.2,
}
PERSONALITY_SATISFACTION_SHARE = 0.3
DEFAULT_ENVIRONMENT_SATISFACTION = 0.5

# Agent resources
RESOURCE_NAMES = ["energy", "compute", "data"]
RESOURCE_MIN = 0.0
RESOURCE_MAX = 100.0

# Global metrics
METRIC_MIN = 0.0
METRIC_MAX = 100.0

BASELINE_GLOBAL_METRICS = {
    "social_trust": 65.0,
    "resource_efficiency": 70.0,
    "individual_autonomy": 60.0,
    "community_wellbeing": 68.0,
    "total_happiness": 66.0,
    "privacy_score": 75.0,
    "freedom_index": 70.0,
}

# (metric, satisfaction baseline, gain) per dominant philosophy
GLOBAL_METRIC_RULES = {
    PHIL_COMMUNITARIANISM: [
        ("social_trust", 0.5, 3.0),
        ("community_wellbeing", 0.5, 4.0),
        ("individual_autonomy", 0.6, 2.0),
    ],
    PHIL_UTILITARIANISM: [
        ("total_happiness", 0.5, 4.0),
        ("resource_efficiency", 0.5, 3.0),
        ("privacy_score", 0.7, 2.0),
    ],
    PHIL_EXISTENTIALISM: [
        ("individual_autonomy", 0.5, 4.0),
        ("freedom_index", 0.5, 3.0),
        ("community_wellbeing", 0.6, 1.5),
    ],
    PHIL_DEONTOLOGY: [
        ("privacy_score", 0.5, 3.0),
        ("freedom_index", 0.5, 3.0),
        ("social_trust", 0.5, 2.5),
    ],
}

# Technology effects
TECH_ACCESSIBILITY_THRESHOLD = 0.7
TECH_ACCESSIBILITY_BONUS = 0.5
TECH_SOCIAL_IMPACT_THRESHOLD = 0.8
TECH_SOCIAL_IMPACT_SPREAD = 2.0

# Persona update scaling
OUTCOME_MULTIPLIERS = {
    "positive": 1.0,
    "negative": -0.5,
    "neutral": 0.3,
}
UNSET_OUTCOME_MULTIPLIER = 0.3

CONFIDENCE_BASE = 0.5
CONFIDENCE_PER_TAG = 0.1
CONFIDENCE_PER_IMPACT = 0.05

PERSONA_UPDATE_TAGS = ("persona_evolution", "dynamic_traits")

# Clock
MAX_STEPS_PER_UPDATE = 10  # Cap steps per frame to avoid catch-up bursts
MAX_SPEED = 10.0
