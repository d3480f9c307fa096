import asyncio
from typing import Any

import structlog

from quotawatch.decoding import (
    clamp_percent,
    datetime_from_iso,
    datetime_from_millis,
    decode_float,
    decode_int,
    normalize_percent,
    section,
)
from quotawatch.errors import DecodingError
from quotawatch.models import (
    DetailedUsage,
    ProviderIdentifier,
    ProviderKind,
    ProviderResult,
    QuotaBased,
)
from quotawatch.provider.base import HTTPUsageProvider

logger = structlog.get_logger()

NANOGPT_USAGE_URL = "https://nano-gpt.com/api/subscription/v1/usage"
NANOGPT_BALANCE_URL = "https://nano-gpt.com/api/check-balance"


def window_percent(
    percent_used: "float | None",
    used: "int | None",
    total: "int | None",
) -> "float | None":
    """
    prefers the reported percentUsed, falling back to used/total.
    """
    if percent_used is not None:
        return normalize_percent(percent_used)
    if used is None or not total or total <= 0:
        return None
    return clamp_percent(used / total * 100.0)


class NanoGptProvider(HTTPUsageProvider):
    """
    NanoGptProvider reads the subscription's monthly request quota
    plus the daily window. The account balance comes from a second
    endpoint and is optional.
    """

    identifier = ProviderIdentifier.NANOGPT
    kind = ProviderKind.QUOTA_BASED

    async def fetch(self) -> "ProviderResult":
        credential = self._credential()
        logger.debug("nanogpt_fetch_started")

        usage_result, balance_result = await asyncio.gather(
            self._request_json(
                "GET",
                NANOGPT_USAGE_URL,
                headers={
                    "Authorization": f"Bearer {credential.secret}",
                    "x-api-key": credential.secret,
                    "Accept": "application/json",
                },
            ),
            self._request_json(
                "POST",
                NANOGPT_BALANCE_URL,
                headers={
                    "x-api-key": credential.secret,
                    "Accept": "application/json",
                },
            ),
            return_exceptions=True,
        )

        if isinstance(usage_result, BaseException):
            raise usage_result

        balance: "Any" = None
        if isinstance(balance_result, BaseException):
            logger.warning("nanogpt_balance_failed", error=str(balance_result))
        else:
            balance = balance_result

        return self.parse_usage(usage_result, balance)

    def parse_usage(self, usage_payload: "Any", balance_payload: "Any" = None) -> "ProviderResult":
        data = self._expect_object(usage_payload)
        limits = section(data, "limits")
        monthly = section(data, "monthly")
        daily = section(data, "daily")

        monthly_limit = decode_int(limits.get("monthly"))
        if monthly_limit is None or monthly_limit <= 0:
            raise DecodingError("missing Nano-GPT monthly limit", self.identifier)

        monthly_used = decode_int(monthly.get("used")) or 0
        monthly_remaining = decode_int(monthly.get("remaining"))
        if monthly_remaining is None:
            monthly_remaining = max(0, monthly_limit - monthly_used)

        daily_limit = decode_int(limits.get("daily"))
        daily_used = decode_int(daily.get("used"))

        balance = balance_payload if isinstance(balance_payload, dict) else {}
        period_end = datetime_from_iso(section(data, "period").get("currentPeriodEnd"))

        details = DetailedUsage(
            daily_usage=float(daily_used) if daily_used is not None else None,
            monthly_usage=float(monthly_used),
            total_credits=decode_float(balance.get("nano_balance")),
            credits_balance=decode_float(balance.get("usd_balance")),
            limit=float(monthly_limit),
            limit_remaining=float(monthly_remaining),
            reset_period=(
                period_end.strftime("%Y-%m-%d %H:%M UTC") if period_end else None
            ),
            secondary_usage_percent=window_percent(
                decode_float(daily.get("percentUsed")), daily_used, daily_limit
            ),
            secondary_used=daily_used,
            secondary_total=daily_limit,
            secondary_resets_at=datetime_from_millis(daily.get("resetAt")),
        )

        logger.info(
            "nanogpt_usage_fetched",
            monthly_used=monthly_used,
            monthly_limit=monthly_limit,
        )
        return ProviderResult(
            usage=QuotaBased(
                remaining=max(0, monthly_remaining),
                entitlement=monthly_limit,
                overage_permitted=False,
            ),
            details=details,
        )
