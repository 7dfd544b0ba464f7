"""Tests for the threshold Weakpoint Detector."""

import itertools

import pytest

from conftest import NOW, fixed_clock, make_scored, make_submission
from elevio.errors import ComputationError, ConfigurationError, InvalidInput
from elevio.scoring import WeightedScoringStrategy
from elevio.weakpoints import ThresholdWeakpointDetector


@pytest.fixture
def detector():
    counter = itertools.count(1)
    return ThresholdWeakpointDetector(clock=fixed_clock, id_factory=lambda: f"wp-{next(counter)}")


def flagged_ids(weakpoints):
    return {w.topic_id for w in weakpoints}


# ==================== Policy ====================

def test_none_input_is_rejected(detector):
    with pytest.raises(InvalidInput):
        detector.detect_weakpoints(None)


def test_empty_input_gives_no_weakpoints(detector):
    assert detector.detect_weakpoints([]) == []


@pytest.mark.parametrize("performance,confidence,expected", [
    (0.3, 0.9, True),
    (0.59, 0.7, True),     # confidence exactly at the floor
    (0.6, 0.9, False),     # performance exactly at the threshold
    (0.9, 0.9, False),
    (0.3, 0.69, False),    # not confident enough
    (None, 1.0, False),    # unscored
])
def test_flagging_policy(detector, performance, confidence, expected):
    weakpoints = detector.detect_weakpoints([make_scored("T", performance, confidence)])

    assert (flagged_ids(weakpoints) == {"T"}) is expected


def test_thresholds_are_configurable():
    strict = ThresholdWeakpointDetector(threshold=0.8, min_confidence=0.5, clock=fixed_clock)

    assert flagged_ids(strict.detect_weakpoints([make_scored("T", 0.7, 0.5)])) == {"T"}


def test_invalid_thresholds():
    with pytest.raises(ConfigurationError):
        ThresholdWeakpointDetector(threshold=1.2)
    with pytest.raises(ConfigurationError):
        ThresholdWeakpointDetector(min_confidence=-0.1)


def test_flagged_topic_without_user_is_an_error(detector):
    with pytest.raises(ComputationError):
        detector.detect_weakpoints([make_scored("T", 0.2, 0.9, user_id=None)])


def test_unflagged_topic_without_user_is_fine(detector):
    assert detector.detect_weakpoints([make_scored("T", None, 0.0, user_id=None)]) == []


def test_weakpoint_fields(detector):
    scored = make_scored("T", 0.2, 0.85)

    [weakpoint] = detector.detect_weakpoints([scored])

    assert weakpoint.id == "wp-1"
    assert weakpoint.user_id == "u1"
    assert weakpoint.topic_id == "T"
    assert weakpoint.topic is scored.topic
    assert weakpoint.confidence == 0.85
    assert weakpoint.audit.created_at == NOW
    assert weakpoint.audit.updated_at == NOW


# ==================== Prerequisite Attribution ====================

def test_weak_prerequisite_marks_dependent_as_symptomatic(detector):
    scored = [
        make_scored("calculus", 0.2, 0.9, deps=["limits"]),
        make_scored("limits", 0.3, 0.9),
        make_scored("integrals", 0.1, 0.9, deps=["calculus"]),
    ]

    weakpoints = detector.detect_weakpoints(scored)

    assert [w.topic_id for w in weakpoints] == ["limits", "calculus", "integrals"]
    limits, calculus, integrals = weakpoints
    assert limits.is_root_cause and limits.root_cause_id is None
    assert calculus.is_symptomatic
    assert calculus.weak_prerequisite_ids == ("limits",)
    assert calculus.root_cause_id == "limits"
    assert integrals.weak_prerequisite_ids == ("limits", "calculus")
    assert integrals.root_cause_id == "limits"


def test_weakness_is_traced_through_strong_prerequisites(detector):
    scored = [
        make_scored("a", 0.2, 0.9),
        make_scored("b", 0.9, 0.9, deps=["a"]),
        make_scored("c", 0.2, 0.9, deps=["b"]),
    ]

    weakpoints = {w.topic_id: w for w in detector.detect_weakpoints(scored)}

    assert set(weakpoints) == {"a", "c"}
    assert weakpoints["c"].root_cause_id == "a"


def test_independent_weak_topics_are_all_root_causes(detector):
    scored = [make_scored("x", 0.1, 0.9), make_scored("y", 0.2, 0.9)]

    weakpoints = detector.detect_weakpoints(scored)

    assert all(w.is_root_cause for w in weakpoints)


def test_prerequisites_outside_the_list_are_ignored(detector):
    [weakpoint] = detector.detect_weakpoints([make_scored("t", 0.1, 0.9, deps=["missing"])])

    assert weakpoint.is_root_cause


def test_attribution_does_not_cross_users(detector):
    scored = [
        make_scored("a", 0.1, 0.9, user_id="u1"),
        make_scored("b", 0.1, 0.9, user_id="u2", deps=["a"]),
    ]

    weakpoints = {w.user_id: w for w in detector.detect_weakpoints(scored)}

    assert weakpoints["u2"].is_root_cause


# ==================== End to End ====================

def test_low_child_is_flagged_but_parent_lacks_confidence(detector, chain_topics):
    engine = WeightedScoringStrategy(clock=fixed_clock)
    submissions = [make_submission([(["B"], 0.3)] * 6)]

    scored = {s.id: s for s in engine.calculate_score(chain_topics, submissions)}
    weakpoints = detector.detect_weakpoints(list(scored.values()))

    assert scored["B"].performance_score == pytest.approx(0.3)
    assert scored["B"].confidence == pytest.approx(0.75)
    assert scored["A"].confidence == pytest.approx(0.6)
    assert flagged_ids(weakpoints) == {"B"}
    assert weakpoints[0].is_root_cause


def test_single_attempt_is_not_confident_enough(detector, chain_topics):
    engine = WeightedScoringStrategy(clock=fixed_clock)

    scored = engine.calculate_score(chain_topics, [make_submission([(["B"], 0.3)])])

    assert detector.detect_weakpoints(scored) == []
