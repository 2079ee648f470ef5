from __future__ import annotations

from mindflow.time_estimator import (
    DEFAULT_TOPIC_MINUTES,
    clamp_custom_base,
    detect_subject,
    estimate,
    is_known_subject,
    normalize_subject,
)


def test_known_subject_estimates_use_level_multiplier() -> None:
    assert estimate("math", "intermediate") == 54
    assert estimate("programming", "beginner") == 110
    assert estimate("science", "advanced") == 38


def test_subject_aliases_resolve_to_table_keys() -> None:
    assert normalize_subject("  Mathematics ") == "math"
    assert normalize_subject("Computer Science") == "programming"
    assert is_known_subject("Biology")
    assert not is_known_subject("Robotics")


def test_custom_subject_scales_base_by_level() -> None:
    assert estimate("Robotics", "beginner", 40) == 60
    assert estimate("Robotics", "intermediate", 40) == 40
    assert estimate("Robotics", "advanced", 40) == 28


def test_custom_base_is_clamped() -> None:
    assert clamp_custom_base(None) == 40
    assert clamp_custom_base(5) == 20
    assert clamp_custom_base(500) == 120
    assert estimate("Robotics", "advanced", 500) == 84


def test_unknown_subject_without_base_uses_default() -> None:
    assert estimate("Gardening", "beginner") == DEFAULT_TOPIC_MINUTES


def test_detect_subject_by_keyword() -> None:
    assert detect_subject("Calculus chapter 3") == "math"
    assert detect_subject("Spanish vocabulary drill") == "language"
    assert detect_subject("Read the assigned poem") == "literature"
    assert detect_subject("Clean garage") is None
