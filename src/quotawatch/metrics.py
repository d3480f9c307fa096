from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from quotawatch.models import ProviderIdentifier, ProviderResult, QuotaBased


class MetricsUpdater:
    """
    applies fetch outcomes to Prometheus metrics. The registry is
    injectable so tests and the textfile export use their own.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._fetch_duration: "Histogram" = Histogram(
            "quotawatch_fetch_duration_seconds",
            "Duration of provider usage fetches",
            ["provider"],
            registry=registry,
        )
        self._fetch_errors: "Counter" = Counter(
            "quotawatch_fetch_errors_total",
            "Total number of failed fetches by provider and error kind",
            ["provider", "kind"],
            registry=registry,
        )
        self._last_fetch_success: "Gauge" = Gauge(
            "quotawatch_last_fetch_success_timestamp_seconds",
            "Unix timestamp of last successful fetch per provider",
            ["provider"],
            registry=registry,
        )
        self._usage_percent: "Gauge" = Gauge(
            "quotawatch_usage_percent",
            "Usage of the current period in percent",
            ["provider"],
            registry=registry,
        )
        self._quota_remaining: "Gauge" = Gauge(
            "quotawatch_quota_remaining",
            "Remaining quota units, negative once in overage",
            ["provider"],
            registry=registry,
        )
        self._overage_cost: "Gauge" = Gauge(
            "quotawatch_overage_cost_usd",
            "Total overage and pay-as-you-go cost across providers",
            registry=registry,
        )

    @property
    def registry(self) -> "CollectorRegistry":
        return self._registry

    def observe_fetch_duration(
        self, provider: "ProviderIdentifier", duration_seconds: "float"
    ) -> "None":
        self._fetch_duration.labels(provider=provider.value).observe(duration_seconds)

    def inc_fetch_error(self, provider: "ProviderIdentifier", kind: "str") -> "None":
        self._fetch_errors.labels(provider=provider.value, kind=kind).inc()

    def set_last_fetch_success(
        self, provider: "ProviderIdentifier", timestamp: "float"
    ) -> "None":
        self._last_fetch_success.labels(provider=provider.value).set(timestamp)

    def update_result(
        self, provider: "ProviderIdentifier", result: "ProviderResult"
    ) -> "None":
        """
        updates the usage gauges from a successful fetch.
        """
        self._usage_percent.labels(provider=provider.value).set(
            result.usage.usage_percentage
        )
        if isinstance(result.usage, QuotaBased):
            self._quota_remaining.labels(provider=provider.value).set(
                result.usage.remaining
            )

    def set_overage_cost(self, amount: "float") -> "None":
        self._overage_cost.set(amount)
