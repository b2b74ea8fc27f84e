"""
Tests for the likelihood x impact scoring model.
"""
import pytest

from compliance_platform.models.risk import RiskLevel
from compliance_platform.services.risk_scoring import (
    calculate_risk_score,
    determine_risk_level,
    score_pair,
    validate_factor,
)


def test_score_is_product_of_factors():
    assert calculate_risk_score(1, 1) == 1
    assert calculate_risk_score(3, 3) == 9
    assert calculate_risk_score(4, 5) == 20
    assert calculate_risk_score(5, 5) == 25


@pytest.mark.parametrize(
    "score,expected",
    [
        (1, RiskLevel.LOW),
        (4, RiskLevel.LOW),
        (5, RiskLevel.MEDIUM),
        (9, RiskLevel.MEDIUM),
        (10, RiskLevel.HIGH),
        (16, RiskLevel.HIGH),
        (17, RiskLevel.CRITICAL),
        (25, RiskLevel.CRITICAL),
    ],
)
def test_level_thresholds(score, expected):
    assert determine_risk_level(score) == expected


@pytest.mark.parametrize("value", [0, 6, -1, 2.5, "3", None, True])
def test_invalid_factor_is_rejected(value):
    with pytest.raises(ValueError):
        validate_factor("likelihood", value)


def test_out_of_range_factor_is_not_clamped():
    with pytest.raises(ValueError) as exc_info:
        calculate_risk_score(6, 1)
    assert "likelihood" in str(exc_info.value)


def test_score_pair_with_missing_factor_is_empty():
    assert score_pair(None, 3) == (None, None)
    assert score_pair(2, None) == (None, None)


def test_score_pair_scores_both_factors():
    assert score_pair(2, 2) == (4, RiskLevel.LOW)
    assert score_pair(4, 5) == (20, RiskLevel.CRITICAL)
