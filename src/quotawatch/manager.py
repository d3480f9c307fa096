import asyncio
import time
from collections.abc import Mapping, Sequence

import httpx
import structlog

from quotawatch.errors import ProviderError
from quotawatch.metrics import MetricsUpdater
from quotawatch.models import (
    FetchOutcome,
    PayAsYouGo,
    ProviderIdentifier,
    ProviderResult,
    QuotaBased,
)
from quotawatch.provider.base import CredentialLookup, UsageProvider
from quotawatch.provider.codex import CodexProvider
from quotawatch.provider.copilot import CopilotProvider
from quotawatch.provider.nanogpt import NanoGptProvider
from quotawatch.provider.openrouter import OpenRouterProvider
from quotawatch.provider.zai import ZaiCodingPlanProvider

logger = structlog.get_logger()

# quota providers below this remaining percentage raise an alert
QUOTA_ALERT_THRESHOLD = 20.0


def default_providers(
    client: "httpx.AsyncClient",
    credentials: "CredentialLookup",
) -> "list[UsageProvider]":
    """
    builds one instance of every supported provider around a shared
    HTTP client and credential lookup.
    """
    return [
        CopilotProvider(client, credentials),
        CodexProvider(client, credentials),
        OpenRouterProvider(client, credentials),
        NanoGptProvider(client, credentials),
        ZaiCodingPlanProvider(client, credentials),
    ]


class ProviderManager:
    """
    ProviderManager fans a refresh out to every enabled provider and
    joins on all of them. Each provider's success or failure is
    captured on its own, so one failing service never hides the
    others. There is no retry: the next refresh is the retry.
    """

    def __init__(
        self,
        providers: "Sequence[UsageProvider]",
        credentials: "CredentialLookup",
        overage_rates: "Mapping[ProviderIdentifier, float] | None" = None,
        metrics: "MetricsUpdater | None" = None,
    ) -> "None":
        self._providers: "dict[ProviderIdentifier, UsageProvider]" = {
            provider.identifier: provider for provider in providers
        }
        self._credentials = credentials
        self._overage_rates: "dict[ProviderIdentifier, float]" = dict(
            overage_rates or {}
        )
        self._metrics = metrics

    def get_provider(
        self, identifier: "ProviderIdentifier"
    ) -> "UsageProvider | None":
        return self._providers.get(identifier)

    def enabled_providers(self) -> "list[UsageProvider]":
        """
        providers whose credential lookup reports a credential.
        """
        return [
            provider
            for identifier, provider in self._providers.items()
            if self._credentials.get_credential(identifier) is not None
        ]

    async def fetch_all(self) -> "FetchOutcome":
        """
        fetches every enabled provider concurrently and returns only
        once all of them have settled.
        """
        providers = self.enabled_providers()
        logger.info(
            "fetch_cycle_start",
            providers=[p.identifier.value for p in providers],
        )

        settled = await asyncio.gather(
            *(self._fetch_one(provider) for provider in providers),
            return_exceptions=True,
        )

        results: "dict[ProviderIdentifier, ProviderResult]" = {}
        errors: "dict[ProviderIdentifier, Exception]" = {}
        for provider, outcome in zip(providers, settled):
            if isinstance(outcome, ProviderResult):
                results[provider.identifier] = outcome
            elif isinstance(outcome, Exception):
                errors[provider.identifier] = outcome
            else:
                # KeyboardInterrupt, CancelledError and friends are not ours to hide
                raise outcome

        if self._metrics is not None:
            self._metrics.set_overage_cost(self.calculate_total_overage_cost(results))

        logger.info(
            "fetch_cycle_end",
            succeeded=sorted(i.value for i in results),
            failed=sorted(i.value for i in errors),
        )
        return FetchOutcome(results=results, errors=errors)

    async def _fetch_one(self, provider: "UsageProvider") -> "ProviderResult":
        identifier = provider.identifier
        started = time.monotonic()
        try:
            result = await provider.fetch()
        except ProviderError as exc:
            logger.warning(
                "provider_fetch_failed",
                provider=identifier.value,
                kind=exc.kind,
                error=exc.message,
            )
            self._record_error(identifier, exc.kind)
            raise
        except Exception:
            logger.exception("provider_fetch_crashed", provider=identifier.value)
            self._record_error(identifier, "unexpected")
            raise
        finally:
            if self._metrics is not None:
                self._metrics.observe_fetch_duration(
                    identifier, time.monotonic() - started
                )

        if self._metrics is not None:
            self._metrics.update_result(identifier, result)
            self._metrics.set_last_fetch_success(identifier, time.time())
        return result

    def _record_error(self, identifier: "ProviderIdentifier", kind: "str") -> "None":
        if self._metrics is not None:
            self._metrics.inc_fetch_error(identifier, kind)

    def calculate_total_overage_cost(
        self, results: "Mapping[ProviderIdentifier, ProviderResult]"
    ) -> "float":
        """
        sums pay-as-you-go spend with the priced overage of quota
        providers that permit running past their entitlement.
        """
        total = 0.0
        for identifier, result in results.items():
            usage = result.usage
            if isinstance(usage, PayAsYouGo):
                total += usage.cost or 0.0
            elif isinstance(usage, QuotaBased):
                if usage.overage_permitted and usage.remaining < 0:
                    rate = self._overage_rates.get(identifier, 0.0)
                    total += abs(usage.remaining) * rate
        return total

    def get_quota_alerts(
        self,
        results: "Mapping[ProviderIdentifier, ProviderResult]",
        threshold: "float" = QUOTA_ALERT_THRESHOLD,
    ) -> "list[tuple[ProviderIdentifier, float]]":
        """
        returns (identifier, remaining percentage) for quota providers
        below the threshold, overage included.
        """
        alerts: "list[tuple[ProviderIdentifier, float]]" = []
        for identifier, result in results.items():
            usage = result.usage
            if not isinstance(usage, QuotaBased) or usage.entitlement <= 0:
                continue
            remaining_percentage = usage.remaining_percentage
            if remaining_percentage < threshold:
                alerts.append((identifier, remaining_percentage))
        return alerts
