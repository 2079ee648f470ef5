"""Per-topic study time estimates keyed by subject and knowledge level."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

DEFAULT_TOPIC_MINUTES = 25
DEFAULT_CUSTOM_BASE_MINUTES = 40
CUSTOM_BASE_MIN = 20
CUSTOM_BASE_MAX = 120

CUSTOM_LEVEL_MULTIPLIERS: Mapping[str, float] = {
    "beginner": 1.5,
    "intermediate": 1.0,
    "advanced": 0.7,
}


@dataclass(frozen=True)
class SubjectProfile:
    base_minutes: int
    multipliers: Mapping[str, float]

    def minutes_for(self, knowledge_level: str) -> float:
        return self.base_minutes * self.multipliers.get(knowledge_level, 1.0)


def _profile(base: int, beginner: float, intermediate: float, advanced: float) -> SubjectProfile:
    return SubjectProfile(
        base_minutes=base,
        multipliers={"beginner": beginner, "intermediate": intermediate, "advanced": advanced},
    )


SUBJECT_PROFILES: Dict[str, SubjectProfile] = {
    "math": _profile(45, 1.8, 1.2, 0.8),
    "science": _profile(50, 1.7, 1.1, 0.75),
    "history": _profile(35, 1.4, 1.0, 0.7),
    "language": _profile(40, 1.6, 1.0, 0.6),
    "literature": _profile(40, 1.5, 1.0, 0.7),
    "economics": _profile(48, 1.7, 1.1, 0.8),
    "programming": _profile(55, 2.0, 1.3, 0.9),
    "art": _profile(50, 1.3, 1.0, 0.7),
    "music": _profile(45, 1.5, 1.0, 0.7),
    "psychology": _profile(42, 1.4, 1.0, 0.7),
}

SUBJECT_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "math": ("math", "algebra", "calculus", "geometry", "equation", "number", "formula", "statistics"),
    "science": ("science", "biology", "chemistry", "physics", "experiment", "atom", "molecule", "element"),
    "history": ("history", "war", "revolution", "ancient", "medieval", "era", "century", "historical"),
    "language": ("english", "spanish", "french", "german", "language", "grammar", "vocabulary", "translate"),
    "literature": ("literature", "novel", "book", "poem", "poetry", "author", "essay", "story"),
    "economics": ("economics", "economy", "market", "trade", "business", "finance", "money", "stock"),
    "programming": ("coding", "code", "programming", "python", "javascript", "java", "debug", "algorithm"),
    "art": ("art", "drawing", "painting", "sketch", "color", "design", "visual"),
    "music": ("music", "song", "instrument", "melody", "rhythm", "note", "compose"),
    "psychology": ("psychology", "behavior", "mind", "mental", "cognitive", "therapy", "emotion"),
}

_SUBJECT_ALIASES: Dict[str, str] = {
    "mathematics": "math",
    "maths": "math",
    "biology": "science",
    "chemistry": "science",
    "physics": "science",
    "computer science": "programming",
    "computer-science": "programming",
    "coding": "programming",
    "english": "language",
    "languages": "language",
    "foreign language": "language",
    "economy": "economics",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_subject(name: str | None) -> str:
    """Map a display subject name onto a known table key when possible."""
    if not name:
        return ""
    key = " ".join(name.strip().lower().split())
    return _SUBJECT_ALIASES.get(key, key)


def is_known_subject(name: str | None) -> bool:
    return normalize_subject(name) in SUBJECT_PROFILES


def detect_subject(text: str) -> Optional[str]:
    """Guess a subject from free text by keyword, or None when nothing matches."""
    lowered = text.lower()
    for subject, keywords in SUBJECT_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return subject
    return None


def clamp_custom_base(minutes: Optional[float]) -> int:
    if minutes is None:
        return DEFAULT_CUSTOM_BASE_MINUTES
    return max(CUSTOM_BASE_MIN, min(CUSTOM_BASE_MAX, round_half_up(minutes)))


def estimate(
    subject: str,
    knowledge_level: str,
    custom_base_minutes: Optional[float] = None,
) -> int:
    """Return the per-topic duration in minutes. Always positive."""
    profile = SUBJECT_PROFILES.get(normalize_subject(subject))
    if profile is not None:
        minutes = round_half_up(profile.minutes_for(knowledge_level))
    elif custom_base_minutes is not None:
        base = clamp_custom_base(custom_base_minutes)
        minutes = round_half_up(base * CUSTOM_LEVEL_MULTIPLIERS.get(knowledge_level, 1.0))
    else:
        minutes = DEFAULT_TOPIC_MINUTES
    return max(1, minutes)


__all__ = [
    "CUSTOM_BASE_MAX",
    "CUSTOM_BASE_MIN",
    "DEFAULT_CUSTOM_BASE_MINUTES",
    "DEFAULT_TOPIC_MINUTES",
    "SUBJECT_KEYWORDS",
    "SUBJECT_PROFILES",
    "SubjectProfile",
    "clamp_custom_base",
    "detect_subject",
    "estimate",
    "is_known_subject",
    "normalize_subject",
    "round_half_up",
]
