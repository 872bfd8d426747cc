"""Kinney & Wiruth risk scoring.

RiskScore = Effect (E) x Exposure (B) x Probability (W)

Two classification tables coexist and are kept separate on purpose:

- ``get_risk_level``: 6-band level stored on hazards and TRAs.
- ``determine_risk_level``: 4-band label for ad-hoc and modifier-adjusted scores.

``calculate_risk_score`` never raises. Malformed input yields ``math.nan`` so a
batch of hazards can be scored while skipping a single bad entry.
"""

import logging
import math
import sys
from enum import Enum
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from safework.core.exceptions import InvalidScoreError

logger = logging.getLogger(__name__)


MIN_VALID_SCORE = 0.0001
MAX_VALID_SCORE = 20000  # headroom above 100 * 10 * 10 for modifiers


class RiskLevel(str, Enum):
    """6-band Kinney risk level."""

    TRIVIAL = "trivial"           # <= 20
    ACCEPTABLE = "acceptable"     # <= 70
    POSSIBLE = "possible"         # <= 200
    SUBSTANTIAL = "substantial"   # <= 400
    HIGH = "high"                 # <= 1000
    VERY_HIGH = "very_high"       # > 1000


class RiskBand(str, Enum):
    """4-band generic risk label."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    EXTREME = "Extreme"


class ScoreDefinition(NamedTuple):
    score: float
    label: str
    description: str


EFFECT_SCORES: List[ScoreDefinition] = [
    ScoreDefinition(1, "Noticeable", "Minor injury, first aid"),
    ScoreDefinition(3, "Important", "Injury with lost time"),
    ScoreDefinition(7, "Serious", "Permanent injury"),
    ScoreDefinition(15, "Very serious", "Single fatality"),
    ScoreDefinition(40, "Disaster", "Several fatalities"),
    ScoreDefinition(100, "Catastrophe", "Many fatalities"),
]

EXPOSURE_SCORES: List[ScoreDefinition] = [
    ScoreDefinition(0.5, "Very rare", "Less than once per year"),
    ScoreDefinition(1, "Rare", "A few times per year"),
    ScoreDefinition(2, "Uncommon", "Once per month"),
    ScoreDefinition(3, "Occasional", "Once per week"),
    ScoreDefinition(6, "Frequent", "Once per day"),
    ScoreDefinition(10, "Continuous", "Continuously or multiple times per day"),
]

PROBABILITY_SCORES: List[ScoreDefinition] = [
    ScoreDefinition(0.1, "Almost impossible", "Never heard of in industry"),
    ScoreDefinition(0.2, "Practically impossible", "Has happened elsewhere"),
    ScoreDefinition(0.5, "Conceivable", "Remotely possible"),
    ScoreDefinition(1, "Not unusual", "Could happen"),
    ScoreDefinition(3, "Quite possible", "About 50/50 chance"),
    ScoreDefinition(6, "Likely", "Probable if not corrected"),
    ScoreDefinition(10, "Expected", "To be expected"),
]

EFFECT_VALUES = frozenset(d.score for d in EFFECT_SCORES)
EXPOSURE_VALUES = frozenset(d.score for d in EXPOSURE_SCORES)
PROBABILITY_VALUES = frozenset(d.score for d in PROBABILITY_SCORES)

# (upper bound inclusive, level)
RISK_LEVEL_BANDS = [
    (20, RiskLevel.TRIVIAL),
    (70, RiskLevel.ACCEPTABLE),
    (200, RiskLevel.POSSIBLE),
    (400, RiskLevel.SUBSTANTIAL),
    (1000, RiskLevel.HIGH),
]

RISK_BANDS = [
    (70, RiskBand.LOW),
    (200, RiskBand.MODERATE),
    (1000, RiskBand.HIGH),
]

RISK_LEVEL_PRIORITY: Dict[RiskLevel, int] = {
    RiskLevel.TRIVIAL: 6,
    RiskLevel.ACCEPTABLE: 5,
    RiskLevel.POSSIBLE: 4,
    RiskLevel.SUBSTANTIAL: 3,
    RiskLevel.HIGH: 2,
    RiskLevel.VERY_HIGH: 1,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_valid_factor(value: Any) -> bool:
    return _is_number(value) and math.isfinite(value) and value >= 0


def calculate_risk_score(
    consequence: Any,
    exposure: Any = 1,
    probability: Any = None,
    modifiers: Optional[Mapping[str, Any]] = None,
) -> float:
    """
    Calculate a Kinney & Wiruth risk score.

    Args:
        consequence: Effect score (E)
        exposure: Exposure score (B), defaults to 1
        probability: Probability score (W)
        modifiers: Named multiplicative factors applied in order. Entries that
            are not finite positive numbers are skipped.

    Returns:
        The score, or ``math.nan`` when any factor is missing, non-finite
        or negative.
    """
    if not all(_is_valid_factor(v) for v in (consequence, exposure, probability)):
        return math.nan

    score = float(consequence) * float(exposure) * float(probability)

    if modifiers:
        for name, value in modifiers.items():
            if _is_number(value) and math.isfinite(value) and value > 0:
                score *= float(value)
            else:
                logger.debug("Skipping invalid risk modifier %s=%r", name, value)

    if abs(score) < sys.float_info.epsilon:
        return 0.0

    return score


def validate_score(score: Any) -> bool:
    """Check that a score is finite, non-negative and within practical Kinney bounds."""
    if not _is_number(score) or not math.isfinite(score):
        return False
    if score < 0:
        return False
    return MIN_VALID_SCORE <= score <= MAX_VALID_SCORE


def get_risk_level(score: Any) -> RiskLevel:
    """Classify a score with the 6-band table (upper bounds inclusive).

    Invalid scores classify as VERY_HIGH.
    """
    if not _is_valid_factor(score):
        return RiskLevel.VERY_HIGH
    for upper, level in RISK_LEVEL_BANDS:
        if score <= upper:
            return level
    return RiskLevel.VERY_HIGH


def determine_risk_level(score: Any) -> RiskBand:
    """Classify a score with the 4-band table. Invalid scores classify as EXTREME."""
    if not _is_valid_factor(score):
        return RiskBand.EXTREME
    for upper, band in RISK_BANDS:
        if score <= upper:
            return band
    return RiskBand.EXTREME


def get_risk_level_priority(level: RiskLevel) -> int:
    """Priority of a risk level, lower is more urgent."""
    return RISK_LEVEL_PRIORITY[RiskLevel(level)]


def calculate_hazard_score(effect: Any, exposure: Any, probability: Any) -> float:
    """
    Score a hazard whose factors must come from the discrete Kinney scales.

    Raises:
        InvalidScoreError: If a factor is not one of the allowed values
    """
    for factor, value, allowed in (
        ("effect", effect, EFFECT_VALUES),
        ("exposure", exposure, EXPOSURE_VALUES),
        ("probability", probability, PROBABILITY_VALUES),
    ):
        if not _is_number(value) or value not in allowed:
            raise InvalidScoreError(factor, value)
    return calculate_risk_score(effect, exposure, probability)


def score_batch(inputs: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Score many inputs, skipping malformed entries.

    Each input is a mapping with ``consequence``, ``probability`` and optional
    ``exposure``/``modifiers`` keys. Skipped entries are logged and omitted.

    Returns:
        One dict per valid input with ``index``, ``score``, ``level`` and ``band``
    """
    results = []
    for index, item in enumerate(inputs):
        score = calculate_risk_score(
            item.get("consequence"),
            item.get("exposure", 1),
            item.get("probability"),
            item.get("modifiers"),
        )
        if math.isnan(score):
            logger.warning("Skipping malformed risk input at index %d", index)
            continue
        results.append({
            "index": index,
            "score": score,
            "valid": validate_score(score),
            "level": get_risk_level(score),
            "band": determine_risk_level(score),
        })
    return results


def get_overall_risk_score(task_steps: Iterable[Any]) -> float:
    """Highest hazard risk score over all task steps (0 when there are none)."""
    max_score = 0.0
    for step in task_steps:
        for hazard in step.hazards:
            if hazard.risk_score > max_score:
                max_score = hazard.risk_score
    return max_score


def group_hazards_by_risk_level(task_steps: Iterable[Any]) -> Dict[RiskLevel, int]:
    """Count hazards per 6-band level."""
    grouped = {level: 0 for level in RiskLevel}
    for step in task_steps:
        for hazard in step.hazards:
            grouped[hazard.risk_level] += 1
    return grouped
