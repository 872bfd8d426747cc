"""Kinney & Wiruth risk scoring for SafeWork."""

from .kinney import (
    RiskLevel,
    RiskBand,
    EFFECT_SCORES,
    EXPOSURE_SCORES,
    PROBABILITY_SCORES,
    calculate_risk_score,
    validate_score,
    get_risk_level,
    determine_risk_level,
    calculate_hazard_score,
    score_batch,
    get_overall_risk_score,
    group_hazards_by_risk_level,
    get_risk_level_priority,
)

__all__ = [
    "RiskLevel",
    "RiskBand",
    "EFFECT_SCORES",
    "EXPOSURE_SCORES",
    "PROBABILITY_SCORES",
    "calculate_risk_score",
    "validate_score",
    "get_risk_level",
    "determine_risk_level",
    "calculate_hazard_score",
    "score_batch",
    "get_overall_risk_score",
    "group_hazards_by_risk_level",
    "get_risk_level_priority",
]
