"""
Wire format for fetch results, histories and predictions.

Optional fields that are absent are left out of the encoded object
rather than written as 0 or null, so a value that was never reported
stays distinguishable from a reported zero and decoding an encoded
value gives back an equal value.
"""

from dataclasses import fields
from datetime import date, datetime
from typing import Any

from quotawatch.errors import NetworkError, ProviderError
from quotawatch.models import (
    DailyUsage,
    DetailedUsage,
    FetchOutcome,
    PayAsYouGo,
    ProviderKind,
    ProviderResult,
    ProviderUsage,
    QuotaBased,
    UsageHistory,
    UsagePrediction,
)

_DATETIME_DETAIL_FIELDS = {"secondary_resets_at"}


def encode_usage(usage: "ProviderUsage") -> "dict[str, Any]":
    if isinstance(usage, PayAsYouGo):
        encoded: "dict[str, Any]" = {
            "type": ProviderKind.PAY_AS_YOU_GO.value,
            "utilization": usage.utilization,
        }
        if usage.cost is not None:
            encoded["cost"] = usage.cost
        if usage.resets_at is not None:
            encoded["resetsAt"] = usage.resets_at.isoformat()
        return encoded

    return {
        "type": ProviderKind.QUOTA_BASED.value,
        "remaining": usage.remaining,
        "entitlement": usage.entitlement,
        "overagePermitted": usage.overage_permitted,
        "usagePercentage": usage.usage_percentage,
    }


def decode_usage(data: "dict[str, Any]") -> "ProviderUsage":
    kind = ProviderKind(data["type"])
    if kind is ProviderKind.PAY_AS_YOU_GO:
        resets_at = data.get("resetsAt")
        return PayAsYouGo(
            utilization=float(data["utilization"]),
            cost=float(data["cost"]) if "cost" in data else None,
            resets_at=datetime.fromisoformat(resets_at) if resets_at else None,
        )
    return QuotaBased(
        remaining=int(data["remaining"]),
        entitlement=int(data["entitlement"]),
        overage_permitted=bool(data["overagePermitted"]),
    )


def _camel_case(name: "str") -> "str":
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# wire key -> DetailedUsage field name
_DETAIL_FIELDS: "dict[str, str]" = {
    _camel_case(f.name): f.name for f in fields(DetailedUsage)
}


def encode_details(details: "DetailedUsage") -> "dict[str, Any]":
    encoded: "dict[str, Any]" = {}
    for key, name in _DETAIL_FIELDS.items():
        value = getattr(details, name)
        if value is None:
            continue
        encoded[key] = value.isoformat() if isinstance(value, datetime) else value
    return encoded


def decode_details(data: "dict[str, Any]") -> "DetailedUsage":
    values: "dict[str, Any]" = {}
    for key, value in data.items():
        name = _DETAIL_FIELDS.get(key)
        if name is None or value is None:
            continue
        if name in _DATETIME_DETAIL_FIELDS:
            value = datetime.fromisoformat(value)
        values[name] = value
    return DetailedUsage(**values)


def encode_result(result: "ProviderResult") -> "dict[str, Any]":
    encoded = {"usage": encode_usage(result.usage)}
    if result.details is not None:
        encoded["details"] = encode_details(result.details)
    return encoded


def decode_result(data: "dict[str, Any]") -> "ProviderResult":
    details = data.get("details")
    return ProviderResult(
        usage=decode_usage(data["usage"]),
        details=decode_details(details) if details is not None else None,
    )


def encode_error(error: "Exception") -> "dict[str, Any]":
    if isinstance(error, ProviderError):
        encoded: "dict[str, Any]" = {"kind": error.kind, "message": error.message}
        if isinstance(error, NetworkError) and error.status_code is not None:
            encoded["statusCode"] = error.status_code
        return encoded
    return {"kind": "unexpected", "message": str(error) or type(error).__name__}


def encode_outcome(outcome: "FetchOutcome") -> "dict[str, Any]":
    return {
        "results": {
            identifier.value: encode_result(result)
            for identifier, result in outcome.results.items()
        },
        "errors": {
            identifier.value: encode_error(error)
            for identifier, error in outcome.errors.items()
        },
    }


def encode_daily_usage(day: "DailyUsage") -> "dict[str, Any]":
    return {
        "date": day.date.isoformat(),
        "includedRequests": day.included_requests,
        "billedRequests": day.billed_requests,
        "grossAmount": day.gross_amount,
        "billedAmount": day.billed_amount,
    }


def decode_daily_usage(data: "dict[str, Any]") -> "DailyUsage":
    return DailyUsage(
        date=date.fromisoformat(data["date"]),
        included_requests=float(data["includedRequests"]),
        billed_requests=float(data.get("billedRequests", 0.0)),
        gross_amount=float(data.get("grossAmount", 0.0)),
        billed_amount=float(data.get("billedAmount", 0.0)),
    )


def encode_history(history: "UsageHistory") -> "dict[str, Any]":
    return {
        "fetchedAt": history.fetched_at.isoformat(),
        "days": [encode_daily_usage(day) for day in history.days],
    }


def decode_history(data: "dict[str, Any]") -> "UsageHistory":
    return UsageHistory(
        fetched_at=datetime.fromisoformat(data["fetchedAt"]),
        days=[decode_daily_usage(day) for day in data.get("days", [])],
    )


def encode_prediction(prediction: "UsagePrediction") -> "dict[str, Any]":
    return {
        "predictedMonthlyRequests": prediction.predicted_monthly_requests,
        "predictedBilledAmount": prediction.predicted_billed_amount,
        "confidenceLevel": prediction.confidence_level.value,
        "daysUsedForPrediction": prediction.days_used_for_prediction,
    }
