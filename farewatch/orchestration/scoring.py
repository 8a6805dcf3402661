"""
Route desirability scoring.

A route's score (0-100, higher is better) blends a price component, a
duration component and, for stopover routes, a layover penalty. All
weights and breakpoints live in RouteScoringPolicy so the policy can be
tuned without touching the optimizer.
"""

from dataclasses import dataclass
from typing import Optional

from farewatch.utils.price_utils import round_half_up


@dataclass(frozen=True)
class RouteScoringPolicy:
    """
    Weights and breakpoints of the route score.

    price component:    100 - (price - price_baseline) / price_per_point, clamped 0-100
    duration component: 100 - (hours - duration_baseline_hours) * points_per_hour, clamped
    layover penalty:    short (< short_layover_hours), moderate (> moderate_layover_hours),
                        long (> long_layover_hours); none in between
    score:              price_weight * price + duration_weight * duration - penalty,
                        rounded and clamped to 0-100
    """

    price_weight: float = 0.5
    price_baseline: float = 300.0
    price_per_point: float = 20.0

    duration_weight: float = 0.3
    duration_baseline_hours: float = 6.0
    points_per_hour: float = 4.0
    # Used when an offer carries no parseable duration
    default_duration_hours: float = 24.0

    short_layover_hours: float = 2.0
    short_layover_penalty: float = 20.0
    moderate_layover_hours: float = 4.0
    moderate_layover_penalty: float = 5.0
    long_layover_hours: float = 8.0
    long_layover_penalty: float = 15.0

    min_score: float = 0.0
    max_score: float = 100.0


DEFAULT_SCORING_POLICY = RouteScoringPolicy()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def price_component(price: float, policy: RouteScoringPolicy = DEFAULT_SCORING_POLICY) -> float:
    raw = 100 - (price - policy.price_baseline) / policy.price_per_point
    return _clamp(raw, 0.0, 100.0)


def duration_component(hours: Optional[float], policy: RouteScoringPolicy = DEFAULT_SCORING_POLICY) -> float:
    if hours is None:
        hours = policy.default_duration_hours
    raw = 100 - (hours - policy.duration_baseline_hours) * policy.points_per_hour
    return _clamp(raw, 0.0, 100.0)


def layover_penalty(layover_hours: Optional[float], policy: RouteScoringPolicy = DEFAULT_SCORING_POLICY) -> float:
    """Penalty for a stopover's layover; direct routes pass ``None``."""
    if layover_hours is None:
        return 0.0
    if layover_hours < policy.short_layover_hours:
        return policy.short_layover_penalty
    if layover_hours > policy.long_layover_hours:
        return policy.long_layover_penalty
    if layover_hours > policy.moderate_layover_hours:
        return policy.moderate_layover_penalty
    return 0.0


def score_route(
    price: float,
    duration_hours: Optional[float],
    layover_hours: Optional[float] = None,
    policy: RouteScoringPolicy = DEFAULT_SCORING_POLICY,
) -> int:
    """
    Score a route. Pure function of its inputs.

    Examples:
        >>> score_route(300, 6)
        80
        >>> score_route(1000, 14.5, layover_hours=3)
        52
    """
    score = (
        policy.price_weight * price_component(price, policy)
        + policy.duration_weight * duration_component(duration_hours, policy)
        - layover_penalty(layover_hours, policy)
    )
    return int(_clamp(round_half_up(score), policy.min_score, policy.max_score))
