"""Aggregate crisis statistics derived from the event and action logs."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from crisis_engine.safety.models import (
    CrisisEvent,
    EmergencyAction,
    IndicatorCount,
    RiskTier,
    Statistics,
    as_utc,
    utcnow,
)

RECENT_WINDOW = timedelta(days=30)
RESPONSE_WINDOW = timedelta(hours=24)
TOP_INDICATOR_LIMIT = 10


def risk_distribution(events: list[CrisisEvent]) -> dict[str, int]:
    """Count of events per tier; every tier is present."""
    distribution = {tier.value: 0 for tier in RiskTier}
    for event in events:
        distribution[event.tier.value] += 1
    return distribution


def top_indicators(events: list[CrisisEvent], limit: int = TOP_INDICATOR_LIMIT) -> list[IndicatorCount]:
    """Most frequent indicators, descending; ties keep first-seen order."""
    counts = Counter(indicator for event in events for indicator in event.indicators)
    return [IndicatorCount(indicator=indicator, count=count) for indicator, count in counts.most_common(limit)]


def response_rate(
    events: list[CrisisEvent],
    actions: list[EmergencyAction],
    window: timedelta = RESPONSE_WINDOW,
) -> float:
    """
    Fraction of high/critical events followed by an emergency action.

    An event counts as responded to when any action is timestamped within
    [event.timestamp, event.timestamp + window]. With no high/critical
    events the rate is 1.0.
    """
    elevated = [event for event in events if event.tier.requires_immediate]
    if not elevated:
        return 1.0

    responded = sum(
        1
        for event in elevated
        if any(event.timestamp <= action.timestamp <= event.timestamp + window for action in actions)
    )
    return responded / len(elevated)


def compute_statistics(
    events: list[CrisisEvent],
    actions: list[EmergencyAction],
    now: Optional[datetime] = None,
    recent_window: timedelta = RECENT_WINDOW,
    response_window: timedelta = RESPONSE_WINDOW,
) -> Statistics:
    """
    Compute crisis statistics.

    Totals cover the full (capped) logs; "recent" counts only entries newer
    than `recent_window` before `now`.
    """
    cutoff = (as_utc(now) if now else utcnow()) - recent_window

    return Statistics(
        total_crisis_events=len(events),
        recent_crisis_events=sum(1 for event in events if event.timestamp > cutoff),
        total_emergency_actions=len(actions),
        recent_emergency_actions=sum(1 for action in actions if action.timestamp > cutoff),
        risk_level_distribution=risk_distribution(events),
        top_indicators=top_indicators(events),
        response_rate=response_rate(events, actions, response_window),
    )
