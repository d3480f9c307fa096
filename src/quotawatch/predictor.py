import calendar
from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone

from quotawatch.models import (
    ConfidenceLevel,
    DailyUsage,
    UsageHistory,
    UsagePrediction,
)

# position 0 is the most recent day
RECENCY_WEIGHTS: "tuple[float, ...]" = (1.5, 1.5, 1.2, 1.2, 1.2, 1.0, 1.0)

# assumed weekend share of weekday usage when no weekend was sampled
WEEKEND_FALLBACK_RATIO = 0.1


class UsagePredictor:
    """
    UsagePredictor projects month-end request usage and overage cost
    from a short history of daily samples.

     - the daily rate is a recency-weighted average of the last 7 days,
     - remaining weekend days are scaled by the observed weekend/weekday
       ratio of the whole history,
     - confidence depends on sample size only.

    All calendar arithmetic is UTC, matching the billing period.
    """

    def __init__(self, cost_per_request: "float" = 0.04) -> "None":
        self._cost_per_request = cost_per_request

    def predict(
        self,
        history: "UsageHistory",
        current_entitlement: "float",
        today: "date | None" = None,
    ) -> "UsagePrediction":
        days = history.days
        if not days:
            return UsagePrediction(
                predicted_monthly_requests=0.0,
                predicted_billed_amount=0.0,
                confidence_level=ConfidenceLevel.LOW,
                days_used_for_prediction=0,
            )

        if today is None:
            today = datetime.now(timezone.utc).date()

        weighted_avg = weighted_average_daily_usage(days)
        weekend_ratio = weekend_weekday_ratio(days)
        remaining_weekdays, remaining_weekends = count_remaining_days(today)

        predicted_total = (
            history.total_included_requests
            + weighted_avg * remaining_weekdays
            + weighted_avg * weekend_ratio * remaining_weekends
        )

        predicted_billed = 0.0
        if predicted_total > current_entitlement:
            predicted_billed = (
                predicted_total - current_entitlement
            ) * self._cost_per_request

        return UsagePrediction(
            predicted_monthly_requests=predicted_total,
            predicted_billed_amount=predicted_billed,
            confidence_level=confidence_for(len(days)),
            days_used_for_prediction=len(days),
        )


def weighted_average_daily_usage(days: "Sequence[DailyUsage]") -> "float":
    newest_first = sorted(days, key=lambda day: day.date, reverse=True)
    weighted_sum = 0.0
    total_weight = 0.0
    for day, weight in zip(newest_first, RECENCY_WEIGHTS):
        weighted_sum += day.included_requests * weight
        total_weight += weight
    if total_weight <= 0:
        return 0.0
    return weighted_sum / total_weight


def weekend_weekday_ratio(days: "Sequence[DailyUsage]") -> "float":
    """
    average weekend usage divided by average weekday usage.
    """
    weekend = [day.included_requests for day in days if day.is_weekend]
    weekday = [day.included_requests for day in days if not day.is_weekend]

    weekday_avg = sum(weekday) / len(weekday) if weekday else 0.0
    weekend_avg = sum(weekend) / len(weekend) if weekend else 0.0

    if weekday_avg == 0:
        return 1.0
    if weekend_avg == 0:
        return WEEKEND_FALLBACK_RATIO
    return weekend_avg / weekday_avg


def count_remaining_days(today: "date") -> "tuple[int, int]":
    """
    splits the days after today up to the end of its month into
    (weekdays, weekends).
    """
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    weekdays = 0
    weekends = 0
    for offset in range(1, days_in_month - today.day + 1):
        if (today + timedelta(days=offset)).weekday() >= 5:
            weekends += 1
        else:
            weekdays += 1
    return weekdays, weekends


def confidence_for(sample_size: "int") -> "ConfidenceLevel":
    if sample_size < 3:
        return ConfidenceLevel.LOW
    if sample_size < 7:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH
