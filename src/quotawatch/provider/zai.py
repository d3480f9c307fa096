from typing import Any

import structlog

from quotawatch.decoding import (
    clamp_percent,
    datetime_from_millis,
    decode_bool,
    decode_float,
    decode_int,
    decode_str,
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

ZAI_QUOTA_URL = "https://api.z.ai/api/monitor/usage/quota/limit"


class ZaiCodingPlanProvider(HTTPUsageProvider):
    """
    ZaiCodingPlanProvider reads the Z.AI GLM Coding Plan limits.

    The API returns a list of limits:
     - TOKENS_LIMIT: rolling prompt window, reported only as a percentage.
     - TIME_LIMIT: monthly tool-call (MCP) quota with absolute counts.
    The token window is the primary quota, expressed as 100 units.
    """

    identifier = ProviderIdentifier.ZAI_CODING_PLAN
    kind = ProviderKind.QUOTA_BASED

    async def fetch(self) -> "ProviderResult":
        credential = self._credential()
        data = await self._request_json(
            "GET",
            ZAI_QUOTA_URL,
            headers={
                "Authorization": f"Bearer {credential.secret}",
                "Accept": "application/json",
            },
        )
        return self.parse_usage(data)

    def parse_usage(self, payload: "Any") -> "ProviderResult":
        body = self._expect_object(payload)
        if decode_bool(body.get("success")) is False:
            raise DecodingError(
                f"quota request unsuccessful: {decode_str(body.get('msg')) or 'unknown'}",
                self.identifier,
            )

        data = section(body, "data")
        limits = data.get("limits")
        if not isinstance(limits, list):
            raise DecodingError("missing data.limits", self.identifier)

        tokens_limit: "dict[str, Any]" = {}
        time_limit: "dict[str, Any]" = {}
        for limit in limits:
            if not isinstance(limit, dict):
                continue
            limit_type = limit.get("type")
            if limit_type == "TOKENS_LIMIT" and not tokens_limit:
                tokens_limit = limit
            elif limit_type == "TIME_LIMIT" and not time_limit:
                time_limit = limit

        percentage = decode_float(tokens_limit.get("percentage"))
        if percentage is None:
            raise DecodingError("missing TOKENS_LIMIT percentage", self.identifier)
        used = round(clamp_percent(percentage))

        time_percent = decode_float(time_limit.get("percentage"))
        details = DetailedUsage(
            plan=decode_str(data.get("level")),
            reset_period=_format_reset(tokens_limit.get("nextResetTime")),
            secondary_usage_percent=(
                clamp_percent(time_percent) if time_percent is not None else None
            ),
            secondary_used=decode_int(time_limit.get("currentValue")),
            secondary_total=decode_int(time_limit.get("usage")),
            secondary_resets_at=datetime_from_millis(time_limit.get("nextResetTime")),
        )

        logger.info("zai_usage_fetched", tokens_percent=percentage)
        return ProviderResult(
            usage=QuotaBased(remaining=100 - used, entitlement=100, overage_permitted=False),
            details=details if details.has_any_value else None,
        )


def _format_reset(value: "Any") -> "str | None":
    reset_at = datetime_from_millis(value)
    if reset_at is None:
        return None
    return reset_at.strftime("%Y-%m-%d %H:%M UTC")
