"""
Decay Model - Trust Decay for Stale Data

Maps the age of witnessed data to a freshness multiplier in [floor, 1].

Policies:
- exponential (default): 0.5 ** (excess / half_life)
- linear: 1 - 0.5 * excess / half_life (0.5 at one half-life)
- step: 0.5 ** floor(excess / half_life) (halves at each full half-life)

where excess = age - grace_period. Data inside the grace period is never
penalised, and the floor keeps ancient data "suspect" rather than zero.
"""

import logging
import math
from typing import Callable, Dict, Optional, Union

from src.models.trust.score_models import DecayPolicy, FreshnessGrade, FreshnessReport
from src.services.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_SECONDS = 1200.0
DEFAULT_GRACE_PERIOD_SECONDS = 30.0
DEFAULT_FLOOR = 0.05

# Upper bound (seconds, inclusive) of each freshness grade
FRESHNESS_GRADE_LIMITS = [
    (30.0, FreshnessGrade.FRESH),
    (120.0, FreshnessGrade.RECENT),
    (300.0, FreshnessGrade.AGING),
    (600.0, FreshnessGrade.STALE),
]
STALE_AFTER_SECONDS = 300.0


def _exponential(excess: float, half_life: float) -> float:
    return 0.5 ** (excess / half_life)


def _linear(excess: float, half_life: float) -> float:
    return 1.0 - 0.5 * (excess / half_life)


def _step(excess: float, half_life: float) -> float:
    return 0.5 ** math.floor(excess / half_life)


_CURVES: Dict[DecayPolicy, Callable[[float, float], float]] = {
    DecayPolicy.EXPONENTIAL: _exponential,
    DecayPolicy.LINEAR: _linear,
    DecayPolicy.STEP: _step,
}


def _coerce_policy(policy: Union[DecayPolicy, str]) -> DecayPolicy:
    try:
        return DecayPolicy(policy)
    except ValueError:
        raise InvalidConfiguration(f"Unknown decay policy: {policy!r}") from None


def _check_parameters(half_life_seconds: float, grace_period_seconds: float, floor: float) -> None:
    if half_life_seconds <= 0:
        raise InvalidConfiguration(f"half_life_seconds must be positive (got {half_life_seconds})")
    if grace_period_seconds < 0:
        raise InvalidConfiguration(f"grace_period_seconds must be >= 0 (got {grace_period_seconds})")
    if not 0.0 <= floor <= 1.0:
        raise InvalidConfiguration(f"decay floor must lie in [0, 1] (got {floor})")


def decay(
    age_seconds: float,
    half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
    grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
    policy: Union[DecayPolicy, str] = DecayPolicy.EXPONENTIAL,
    floor: float = DEFAULT_FLOOR,
) -> float:
    """
    Freshness multiplier for data of the given age.

    Args:
        age_seconds: Seconds since the data was witnessed (negative treated as 0)
        half_life_seconds: Decay half-life beyond the grace period
        grace_period_seconds: Age below which no penalty applies
        policy: Decay curve (linear, exponential, step)
        floor: Minimum multiplier returned

    Returns:
        Multiplier in [floor, 1.0]

    Raises:
        InvalidConfiguration: Unknown policy or out-of-range parameters
    """
    curve = _CURVES[_coerce_policy(policy)]
    _check_parameters(half_life_seconds, grace_period_seconds, floor)

    age = max(0.0, age_seconds)
    if age <= grace_period_seconds:
        return 1.0

    multiplier = curve(age - grace_period_seconds, half_life_seconds)
    return min(1.0, max(floor, multiplier))


def freshness_grade(age_seconds: float) -> FreshnessGrade:
    """Bucket an age into a freshness grade"""
    for limit, grade in FRESHNESS_GRADE_LIMITS:
        if age_seconds <= limit:
            return grade
    return FreshnessGrade.EXPIRED


class DecayModel:
    """
    Configured decay policy.

    Parameters are validated once at construction so that evaluation during a
    request can never fail.
    """

    def __init__(
        self,
        policy: Union[DecayPolicy, str] = DecayPolicy.EXPONENTIAL,
        half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
        grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
        floor: float = DEFAULT_FLOOR,
    ):
        self.policy = _coerce_policy(policy)
        _check_parameters(half_life_seconds, grace_period_seconds, floor)
        self.half_life_seconds = float(half_life_seconds)
        self.grace_period_seconds = float(grace_period_seconds)
        self.floor = float(floor)

        logger.info(
            f"DecayModel initialized: policy={self.policy.value}, "
            f"half_life={self.half_life_seconds}s, grace={self.grace_period_seconds}s, floor={self.floor}"
        )

    def multiplier(self, age_seconds: float) -> float:
        return decay(
            age_seconds,
            half_life_seconds=self.half_life_seconds,
            grace_period_seconds=self.grace_period_seconds,
            policy=self.policy,
            floor=self.floor,
        )

    def evaluate(self, age_seconds: float, label: Optional[str] = None) -> FreshnessReport:
        """
        Evaluate decay for one age with a full freshness report.

        Args:
            age_seconds: Raw age; negative values (clock skew) are clamped to 0
            label: Optional name of the data for warning messages

        Returns:
            FreshnessReport with multiplier, grade and warnings
        """
        warnings = []
        age = age_seconds
        if age < 0:
            subject = label or "data"
            warnings.append(
                f"Timestamp of {subject} is {abs(age):.1f}s in the future (clock skew); age clamped to 0"
            )
            age = 0.0

        multiplier = self.multiplier(age)
        if multiplier <= self.floor:
            warnings.append(f"Freshness at floor ({self.floor:.2f}); data is treated as suspect")

        return FreshnessReport(
            age_seconds=age,
            multiplier=multiplier,
            policy=self.policy,
            within_grace=age <= self.grace_period_seconds,
            freshness_grade=freshness_grade(age),
            is_stale=age > STALE_AFTER_SECONDS,
            warnings=warnings,
        )
