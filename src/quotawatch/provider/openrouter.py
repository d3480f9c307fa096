import asyncio
from typing import Any

import structlog

from quotawatch.decoding import clamp_percent, decode_float, require_float, section
from quotawatch.models import (
    DetailedUsage,
    PayAsYouGo,
    ProviderIdentifier,
    ProviderKind,
    ProviderResult,
)
from quotawatch.provider.base import HTTPUsageProvider

logger = structlog.get_logger()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(HTTPUsageProvider):
    """
    OpenRouterProvider measures the prepaid credit pool. The credits
    endpoint is authoritative for utilization; the key endpoint only
    adds spend breakdowns, so its failure just drops those details.
    """

    identifier = ProviderIdentifier.OPENROUTER
    kind = ProviderKind.PAY_AS_YOU_GO

    async def fetch(self) -> "ProviderResult":
        credential = self._credential()
        headers = {
            "Authorization": f"Bearer {credential.secret}",
            "Accept": "application/json",
        }

        credits_result, key_result = await asyncio.gather(
            self._request_json("GET", f"{OPENROUTER_BASE_URL}/credits", headers),
            self._request_json("GET", f"{OPENROUTER_BASE_URL}/key", headers),
            return_exceptions=True,
        )

        if isinstance(credits_result, BaseException):
            raise credits_result

        key_data: "Any" = None
        if isinstance(key_result, BaseException):
            logger.warning(
                "openrouter_key_fetch_failed",
                error=str(key_result),
            )
        else:
            key_data = key_result

        return self.parse_usage(credits_result, key_data)

    def parse_usage(self, credits_payload: "Any", key_payload: "Any" = None) -> "ProviderResult":
        credits = section(self._expect_object(credits_payload), "data")
        total_credits = require_float(credits, "total_credits", self.identifier)
        total_usage = require_float(credits, "total_usage", self.identifier)

        utilization = 0.0
        if total_credits > 0:
            utilization = clamp_percent(total_usage / total_credits * 100.0)

        key = section(key_payload, "data")
        monthly = decode_float(key.get("usage_monthly"))

        details = DetailedUsage(
            daily_usage=decode_float(key.get("usage_daily")),
            weekly_usage=decode_float(key.get("usage_weekly")),
            monthly_usage=monthly,
            total_credits=total_credits,
            remaining_credits=total_credits - total_usage,
            limit=decode_float(key.get("limit")),
            limit_remaining=decode_float(key.get("limit_remaining")),
        )

        logger.info(
            "openrouter_usage_fetched",
            utilization=round(utilization, 2),
            total_credits=total_credits,
        )
        return ProviderResult(
            usage=PayAsYouGo(utilization=utilization, cost=monthly),
            details=details,
        )
