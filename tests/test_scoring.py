import math

import pytest

from raisa.services import scoring


def test_clamp_limits_and_neutral_for_nan():
    assert scoring.clamp(-12) == 0
    assert scoring.clamp(140.6) == 100
    assert scoring.clamp(61.4) == 61
    assert scoring.clamp(math.nan) == scoring.NEUTRAL_SCORE


def test_urgency_marked_urgent_starts_at_90():
    assert scoring.urgency_score(False, None, True) == 90
    assert scoring.urgency_score(True, 40, True) == 90
    assert scoring.urgency_score(True, -2, True) == 100


def test_urgency_decreases_as_deadline_moves_away():
    scores = [scoring.urgency_score(True, d, False) for d in (-1, 0, 5, 10, 20, 45, 90, 365)]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 100
    assert scores[-1] == scoring.URGENCY_FLOOR


def test_urgency_without_deadline_is_neutral():
    assert scoring.urgency_score(False, 3, False) == scoring.NEUTRAL_SCORE
    assert scoring.urgency_score(True, None, False) == scoring.NEUTRAL_SCORE


def test_billing_is_increasing_and_saturates():
    values = [0, 4_999, 5_000, 12_000, 25_000, 40_000, 1_000_000]
    scores = [scoring.billing_score(v) for v in values]
    assert scores == sorted(scores)
    assert scores[-1] == 100


@pytest.mark.parametrize("value", [None, "abc", float("inf"), True])
def test_billing_missing_or_invalid_is_neutral(value):
    assert scoring.billing_score(value) == scoring.NEUTRAL_SCORE


def test_negative_billing_does_not_raise():
    assert 0 <= scoring.billing_score(-50_000) <= 100


def test_vip_boost_only_for_true():
    assert scoring.vip_boost(True) == 20
    assert scoring.vip_boost(False) == 0
    assert scoring.vip_boost(None) == 0


def test_time_open_increasing():
    scores = [scoring.time_open_score(d) for d in (0, 7, 10, 20, 40, 120)]
    assert scores == sorted(scores)
    assert scoring.time_open_score(None) == scoring.NEUTRAL_SCORE


def test_stack_complexity_by_seniority_and_size():
    assert scoring.stack_complexity_score(["Python"], "Junior") == 20
    assert scoring.stack_complexity_score(["Python", "SQL", "AWS", "Docker", "K8s"], "Senior") == 70
    assert scoring.stack_complexity_score("Python, SQL, AWS, Go", "Especialista") == 85


def test_stack_complexity_degrades_to_neutral():
    assert scoring.stack_complexity_score(None, None) == scoring.NEUTRAL_SCORE
    assert scoring.stack_complexity_score([], {"nivel": "?"}) == scoring.NEUTRAL_SCORE
