"""Adherence analyzer.

Turns a window of daily logs into aggregate adherence scores, detected
per-item patterns, advisory recommendations and the decision whether a
plan adjustment should be offered.

The analyzer is a pure function of its input: no I/O, no clock reads
except the fallback date for an empty window, and identical input always
produces an identical analysis.
"""

import datetime as dt
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from healthplan.core.adherence.constants import (
    CONSECUTIVE_MISS_THRESHOLD,
    LOW_ADHERENCE_PERCENT,
    MIN_TIMING_SAMPLES,
    MISS_RATE_THRESHOLD,
    TIMING_CONSISTENCY_BAND_MINUTES,
    TIMING_DELAY_THRESHOLD_MINUTES,
    TIMING_TRIGGER_MINUTES,
    TOP_REASONS,
)
from healthplan.core.adherence.enums import AdherenceLevel, DeviationReason, PlanType
from healthplan.core.adherence.models import (
    AdherenceAnalysis,
    AdherencePattern,
    DailyLog,
    Deviation,
    TimingDeviation,
)
from healthplan.core.adherence.scoring import (
    completed_weight,
    parse_minutes,
    percent,
    round_half_up,
)
from healthplan.core.errors import ValidationError

# Advice offered for an item skipped on CONSECUTIVE_MISS_THRESHOLD adjacent
# days. Only the first reason in table order that the pattern reports is used.
MEAL_ADVICE: dict[DeviationReason, str] = {
    DeviationReason.time_constraint: (
        "Consider simpler meals for {item} with shorter prep time"
    ),
    DeviationReason.not_hungry: "Adjust {item} timing or reduce portion size",
    DeviationReason.didnt_like: "Explore alternative recipes for {item}",
}

TRAINING_ADVICE: dict[DeviationReason, str] = {
    DeviationReason.too_tired: "Reduce intensity or duration of {item} sessions",
    DeviationReason.schedule_conflict: (
        "Reschedule {item} to a different time or day"
    ),
    DeviationReason.lack_of_motivation: (
        "Add variety to {item} or try different exercises"
    ),
}

SIMPLIFY_MEALS_RECOMMENDATION = (
    "Consider simplifying your meal plan with easier recipes"
)
REDUCE_TRAINING_RECOMMENDATION = "Consider reducing workout frequency or intensity"


@dataclass
class _ItemHistory:
    """Per meal type / session name accumulator across the window."""

    missed_days: set[int] = field(default_factory=set)
    reasons: list[DeviationReason] = field(default_factory=list)
    delays: list[int] = field(default_factory=list)

    def record_deviations(self, deviations: Iterable[Deviation]) -> None:
        self.reasons.extend(d.reason for d in deviations)


def analyze_adherence(
    logs: Sequence[DailyLog],
    *,
    today: dt.date | None = None,
) -> AdherenceAnalysis:
    """Analyze a window of daily logs for one user.

    Args:
        logs: Daily logs in any order, already filtered to the window.
        today: Date reported as the period for an empty window. Defaults
            to the current date.

    Returns:
        The derived AdherenceAnalysis.

    Raises:
        ValidationError: If any log has no date.
    """
    if not logs:
        fallback = today or dt.date.today()
        return AdherenceAnalysis(
            period_start=fallback,
            period_end=fallback,
            overall_adherence=0,
            meal_adherence=0,
            training_adherence=0,
        )

    for log in logs:
        if getattr(log, "date", None) is None:
            raise ValidationError(f"Daily log {log.id} has no date")

    ordered = sorted(logs, key=lambda log: log.date)

    overall_adherence = round_half_up(
        sum(log.overall_adherence for log in ordered) / len(ordered)
    )

    meal_entries = [meal for log in ordered for meal in log.meal_logs]
    meal_adherence = percent(completed_weight(meal_entries), len(meal_entries))

    training_entries = [session for log in ordered for session in log.training_logs]
    training_adherence = percent(
        completed_weight(training_entries), len(training_entries)
    )

    patterns = _meal_patterns(ordered) + _training_patterns(ordered)

    return AdherenceAnalysis(
        period_start=ordered[0].date,
        period_end=ordered[-1].date,
        overall_adherence=overall_adherence,
        meal_adherence=meal_adherence,
        training_adherence=training_adherence,
        patterns=patterns,
        recommendations=generate_recommendations(
            patterns, meal_adherence, training_adherence
        ),
        triggers_adjustment=should_trigger_adjustment(patterns, overall_adherence),
    )


def _meal_patterns(ordered: Sequence[DailyLog]) -> list[AdherencePattern]:
    histories: dict[str, _ItemHistory] = {}

    for index, log in enumerate(ordered):
        for meal in log.meal_logs:
            history = histories.setdefault(meal.meal_type, _ItemHistory())
            if meal.adherence == AdherenceLevel.skipped:
                history.missed_days.add(index)
            history.record_deviations(meal.deviations)
            if meal.scheduled_time and meal.actual_time:
                history.delays.append(
                    parse_minutes(meal.actual_time) - parse_minutes(meal.scheduled_time)
                )

    patterns = []
    for meal_type, history in histories.items():
        miss_rate = len(history.missed_days) / len(ordered)
        consecutive = max_consecutive(history.missed_days)
        timing = _timing_deviation(history.delays)

        if _is_miss_pattern(consecutive, miss_rate) or timing.consistent:
            patterns.append(
                AdherencePattern(
                    type=PlanType.meal,
                    item_name=meal_type[:1].upper() + meal_type[1:],
                    consecutive_misses=consecutive,
                    miss_rate=miss_rate,
                    common_reasons=common_reasons(history.reasons),
                    timing_deviations=timing,
                )
            )
    return patterns


def _training_patterns(ordered: Sequence[DailyLog]) -> list[AdherencePattern]:
    histories: dict[str, _ItemHistory] = {}

    for index, log in enumerate(ordered):
        for session in log.training_logs:
            history = histories.setdefault(session.session_name, _ItemHistory())
            if session.adherence == AdherenceLevel.skipped:
                history.missed_days.add(index)
            history.record_deviations(session.deviations)

    patterns = []
    for session_name, history in histories.items():
        miss_rate = len(history.missed_days) / len(ordered)
        consecutive = max_consecutive(history.missed_days)

        if _is_miss_pattern(consecutive, miss_rate):
            patterns.append(
                AdherencePattern(
                    type=PlanType.training,
                    item_name=session_name,
                    consecutive_misses=consecutive,
                    miss_rate=miss_rate,
                    common_reasons=common_reasons(history.reasons),
                )
            )
    return patterns


def _is_miss_pattern(consecutive_misses: int, miss_rate: float) -> bool:
    return (
        consecutive_misses >= CONSECUTIVE_MISS_THRESHOLD
        or miss_rate > MISS_RATE_THRESHOLD
    )


def _timing_deviation(delays: Sequence[int]) -> TimingDeviation:
    if not delays:
        return TimingDeviation()

    mean = sum(delays) / len(delays)
    consistent = (
        len(delays) >= MIN_TIMING_SAMPLES
        and abs(mean) > TIMING_DELAY_THRESHOLD_MINUTES
        and all(abs(d - mean) < TIMING_CONSISTENCY_BAND_MINUTES for d in delays)
    )
    return TimingDeviation(average_delay=round_half_up(mean), consistent=consistent)


def max_consecutive(indices: Iterable[int]) -> int:
    """Length of the longest run of adjacent integers in ``indices``."""
    ordered = sorted(set(indices))
    if not ordered:
        return 0

    longest = current = 1
    for previous, index in zip(ordered, ordered[1:]):
        current = current + 1 if index == previous + 1 else 1
        longest = max(longest, current)
    return longest


def common_reasons(reasons: Sequence[DeviationReason]) -> list[DeviationReason]:
    """Most frequent reasons, ties broken by first occurrence."""
    return [reason for reason, _ in Counter(reasons).most_common(TOP_REASONS)]


def generate_recommendations(
    patterns: Sequence[AdherencePattern],
    meal_adherence: int,
    training_adherence: int,
) -> list[str]:
    """Advisory sentences for the detected patterns and low scores."""
    recommendations: list[str] = []

    for pattern in patterns:
        advice = MEAL_ADVICE if pattern.type == PlanType.meal else TRAINING_ADVICE

        if pattern.consecutive_misses >= CONSECUTIVE_MISS_THRESHOLD:
            for reason, template in advice.items():
                if reason in pattern.common_reasons:
                    recommendations.append(template.format(item=pattern.item_name))
                    break

        timing = pattern.timing_deviations
        if (
            pattern.type == PlanType.meal
            and timing.consistent
            and abs(timing.average_delay) > TIMING_DELAY_THRESHOLD_MINUTES
        ):
            direction = "later" if timing.average_delay > 0 else "earlier"
            hours = round_half_up(abs(timing.average_delay) / 60)
            recommendations.append(
                f"Shift {pattern.item_name} {hours} hour(s) {direction} "
                "to match your actual schedule"
            )

    if meal_adherence < LOW_ADHERENCE_PERCENT:
        recommendations.append(SIMPLIFY_MEALS_RECOMMENDATION)

    if training_adherence < LOW_ADHERENCE_PERCENT:
        recommendations.append(REDUCE_TRAINING_RECOMMENDATION)

    return recommendations


def should_trigger_adjustment(
    patterns: Sequence[AdherencePattern],
    overall_adherence: int,
) -> bool:
    """Whether to offer a plan regeneration.

    Any one signal is enough: a run of consecutive misses, low overall
    adherence, or a consistent timing drift of more than an hour.
    """
    if any(p.consecutive_misses >= CONSECUTIVE_MISS_THRESHOLD for p in patterns):
        return True

    if overall_adherence < LOW_ADHERENCE_PERCENT:
        return True

    return any(
        p.timing_deviations.consistent
        and abs(p.timing_deviations.average_delay) > TIMING_TRIGGER_MINUTES
        for p in patterns
    )
