from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from quotawatch.decoding import (
    clamp_percent,
    decode_float,
    decode_int,
    decode_str,
    require_float,
    section,
)
from quotawatch.errors import AuthenticationFailed, DecodingError
from quotawatch.models import (
    DetailedUsage,
    PayAsYouGo,
    ProviderIdentifier,
    ProviderKind,
    ProviderResult,
)
from quotawatch.provider.base import HTTPUsageProvider

logger = structlog.get_logger()

CODEX_USAGE_URL = "https://chatgpt.com/backend-api/wham/usage"


class CodexProvider(HTTPUsageProvider):
    """
    CodexProvider reports the ChatGPT Codex rate-limit windows. The
    primary (short) window drives the utilization; the secondary
    (weekly) window is reported in the details.
    """

    identifier = ProviderIdentifier.CODEX
    kind = ProviderKind.PAY_AS_YOU_GO

    async def fetch(self) -> "ProviderResult":
        credential = self._credential()
        if not credential.account_id:
            raise AuthenticationFailed("ChatGPT account ID not found", self.identifier)

        data = await self._request_json(
            "GET",
            CODEX_USAGE_URL,
            headers={
                "Authorization": f"Bearer {credential.secret}",
                "ChatGPT-Account-Id": credential.account_id,
                "Accept": "application/json",
            },
        )
        return self.parse_usage(data, now=datetime.now(timezone.utc))

    def parse_usage(self, payload: "Any", now: "datetime") -> "ProviderResult":
        data = self._expect_object(payload)
        rate_limit = section(data, "rate_limit")
        primary = section(rate_limit, "primary_window")
        if not primary:
            raise DecodingError("missing rate_limit.primary_window", self.identifier)

        # used_percent is always a percentage here, never a fraction
        used_percent = clamp_percent(
            require_float(primary, "used_percent", self.identifier)
        )
        resets_at = _reset_time(primary, now)

        secondary = section(rate_limit, "secondary_window")
        secondary_percent = decode_float(secondary.get("used_percent"))
        credits = section(data, "credits")

        details = DetailedUsage(
            plan=decode_str(data.get("plan_type")),
            credits_balance=decode_float(credits.get("balance")),
            secondary_usage_percent=(
                clamp_percent(secondary_percent) if secondary_percent is not None else None
            ),
            secondary_resets_at=_reset_time(secondary, now),
        )

        logger.info(
            "codex_usage_fetched",
            used_percent=used_percent,
            resets_at=resets_at.isoformat() if resets_at else None,
        )
        return ProviderResult(
            usage=PayAsYouGo(utilization=used_percent, resets_at=resets_at),
            details=details if details.has_any_value else None,
        )


def _reset_time(window: "dict[str, Any]", now: "datetime") -> "datetime | None":
    seconds = decode_int(window.get("reset_after_seconds"))
    if seconds is None:
        return None
    return now + timedelta(seconds=seconds)
