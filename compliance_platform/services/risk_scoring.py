"""
Risk scoring model.

A risk score is the product of two 1-5 factors (likelihood and impact), so
it always falls in 1-25. The qualitative level is a step function over the
score and is applied identically to initial and residual pairs.
"""
from typing import Optional, Tuple

from compliance_platform.models.risk import RiskLevel

MIN_FACTOR = 1
MAX_FACTOR = 5

# Lower bound (inclusive) of each level, highest first
LEVEL_THRESHOLDS = (
    (17, RiskLevel.CRITICAL),
    (10, RiskLevel.HIGH),
    (5, RiskLevel.MEDIUM),
)


def validate_factor(name: str, value) -> int:
    """Reject anything that is not an integer in 1-5. Values are never clamped."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer between {MIN_FACTOR} and {MAX_FACTOR}")
    if value < MIN_FACTOR or value > MAX_FACTOR:
        raise ValueError(f"{name} must be between {MIN_FACTOR} and {MAX_FACTOR}, got {value}")
    return value


def calculate_risk_score(likelihood: int, impact: int) -> int:
    """Return likelihood * impact after validating both factors."""
    validate_factor("likelihood", likelihood)
    validate_factor("impact", impact)
    return likelihood * impact


def determine_risk_level(score: int) -> RiskLevel:
    """Map a score onto Low / Medium / High / Critical."""
    for lower_bound, level in LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return RiskLevel.LOW


def score_pair(likelihood: Optional[int], impact: Optional[int]) -> Tuple[Optional[int], Optional[RiskLevel]]:
    """
    Score a (likelihood, impact) pair.

    Returns (None, None) when either factor is missing, which is how residual
    scores stay absent until both residual factors have been set.
    """
    if likelihood is None or impact is None:
        return None, None
    score = calculate_risk_score(likelihood, impact)
    return score, determine_risk_level(score)
