from typing import Any

import structlog

from quotawatch.decoding import (
    datetime_from_iso,
    decode_bool,
    decode_str,
    require_int,
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

COPILOT_USER_URL = "https://api.github.com/copilot_internal/user"

_PLAN_NAMES: "dict[str, str]" = {
    "individual_pro": "Pro",
    "individual_free": "Free",
    "business": "Business",
    "enterprise": "Enterprise",
}


def plan_display_name(plan: "str | None") -> "str | None":
    """
    maps the raw plan token ("individual_pro") to a readable name.
    """
    if not plan:
        return None
    return _PLAN_NAMES.get(plan.lower(), plan.replace("_", " ").title())


class CopilotProvider(HTTPUsageProvider):
    """
    CopilotProvider reads the monthly premium request quota from the
    Copilot internal user endpoint. Copilot lets paid plans run past
    the entitlement, in which case remaining goes negative.
    """

    identifier = ProviderIdentifier.COPILOT
    kind = ProviderKind.QUOTA_BASED

    async def fetch(self) -> "ProviderResult":
        credential = self._credential()
        data = await self._request_json(
            "GET",
            COPILOT_USER_URL,
            headers={
                "Authorization": f"token {credential.secret}",
                "Accept": "application/json",
                "Editor-Version": "vscode/1.96.2",
            },
        )
        return self.parse_usage(data)

    def parse_usage(self, payload: "Any") -> "ProviderResult":
        data = self._expect_object(payload)
        premium = section(section(data, "quota_snapshots"), "premium_interactions")
        if not premium:
            raise DecodingError(
                "missing quota_snapshots.premium_interactions", self.identifier
            )

        entitlement = require_int(premium, "entitlement", self.identifier)
        remaining = require_int(premium, "remaining", self.identifier)
        overage_permitted = bool(decode_bool(premium.get("overage_permitted")))

        reset_at = datetime_from_iso(data.get("quota_reset_date"))
        details = DetailedUsage(
            plan=plan_display_name(decode_str(data.get("copilot_plan"))),
            reset_period=reset_at.strftime("%Y-%m-%d %H:%M UTC") if reset_at else None,
        )

        logger.info(
            "copilot_usage_fetched",
            remaining=remaining,
            entitlement=entitlement,
            overage_permitted=overage_permitted,
        )
        return ProviderResult(
            usage=QuotaBased(
                remaining=remaining,
                entitlement=max(0, entitlement),
                overage_permitted=overage_permitted,
            ),
            details=details if details.has_any_value else None,
        )
