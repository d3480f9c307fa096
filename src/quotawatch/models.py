import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Union


class ProviderIdentifier(enum.Enum):
    """
    ProviderIdentifier is the closed set of supported services. The
    value is the stable lowercase token used in config, history files
    and JSON output.
    """

    COPILOT = "copilot"
    CODEX = "codex"
    OPENROUTER = "openrouter"
    NANOGPT = "nanogpt"
    ZAI_CODING_PLAN = "zai-coding-plan"

    @property
    def display_name(self) -> "str":
        return _DISPLAY_NAMES[self]

    @classmethod
    def lookup(cls, name: "str") -> "ProviderIdentifier | None":
        """
        finds an identifier by token or display name, case-insensitive.
        """
        needle = name.strip().lower()
        for identifier in cls:
            if needle in (identifier.value, identifier.display_name.lower()):
                return identifier
        return None


_DISPLAY_NAMES: "dict[ProviderIdentifier, str]" = {
    ProviderIdentifier.COPILOT: "GitHub Copilot",
    ProviderIdentifier.CODEX: "ChatGPT Codex",
    ProviderIdentifier.OPENROUTER: "OpenRouter",
    ProviderIdentifier.NANOGPT: "Nano-GPT",
    ProviderIdentifier.ZAI_CODING_PLAN: "Z.AI Coding Plan",
}


class ProviderKind(enum.Enum):
    PAY_AS_YOU_GO = "pay-as-you-go"
    QUOTA_BASED = "quota-based"


@dataclass(frozen=True, slots=True)
class PayAsYouGo:
    """
    PayAsYouGo is the usage state of a continuously metered pool.
    utilization is the source of truth for the percentage and is
    already normalised into [0, 100] when the value is built.
    """

    utilization: "float"
    # best-effort amount spent in the current period, USD
    cost: "float | None" = None
    resets_at: "datetime | None" = None

    @property
    def kind(self) -> "ProviderKind":
        return ProviderKind.PAY_AS_YOU_GO

    @property
    def usage_percentage(self) -> "float":
        return self.utilization

    @property
    def is_within_limit(self) -> "bool":
        return self.utilization < 100.0

    @property
    def remaining_quota(self) -> "int | None":
        return None

    @property
    def total_entitlement(self) -> "int | None":
        return None


@dataclass(frozen=True, slots=True)
class QuotaBased:
    """
    QuotaBased is the usage state of a fixed periodic entitlement.
    remaining goes negative once the entitlement is exceeded.
    """

    remaining: "int"
    entitlement: "int"
    overage_permitted: "bool" = False

    @property
    def kind(self) -> "ProviderKind":
        return ProviderKind.QUOTA_BASED

    @property
    def usage_percentage(self) -> "float":
        if self.entitlement <= 0:
            return 0.0
        return 100.0 * (self.entitlement - self.remaining) / self.entitlement

    @property
    def remaining_percentage(self) -> "float":
        if self.entitlement <= 0:
            return 0.0
        return 100.0 * self.remaining / self.entitlement

    @property
    def overage_amount(self) -> "int":
        return max(0, -self.remaining)

    @property
    def is_within_limit(self) -> "bool":
        return self.remaining >= 0

    @property
    def remaining_quota(self) -> "int | None":
        return self.remaining

    @property
    def total_entitlement(self) -> "int | None":
        return self.entitlement


ProviderUsage = Union[PayAsYouGo, QuotaBased]


@dataclass(frozen=True, slots=True)
class DetailedUsage:
    """
    DetailedUsage is the optional secondary breakdown attached to a
    fetch result. Nothing here is needed to compute the primary usage
    figure, so every field may be absent.
    """

    daily_usage: "float | None" = None
    weekly_usage: "float | None" = None
    monthly_usage: "float | None" = None
    total_credits: "float | None" = None
    remaining_credits: "float | None" = None
    credits_balance: "float | None" = None
    limit: "float | None" = None
    limit_remaining: "float | None" = None
    # human-readable reset description, e.g. "2026-03-01 00:00 UTC"
    reset_period: "str | None" = None
    plan: "str | None" = None
    # secondary quota window (weekly window, daily cap, tool-call quota...)
    secondary_usage_percent: "float | None" = None
    secondary_used: "int | None" = None
    secondary_total: "int | None" = None
    secondary_resets_at: "datetime | None" = None

    @property
    def has_any_value(self) -> "bool":
        return any(getattr(self, name) is not None for name in self.__dataclass_fields__)


@dataclass(frozen=True, slots=True)
class ProviderResult:
    usage: "ProviderUsage"
    details: "DetailedUsage | None" = None


@dataclass(frozen=True)
class FetchOutcome:
    """
    FetchOutcome is the product of one refresh cycle. A provider is
    either in results or in errors, never both.
    """

    results: "dict[ProviderIdentifier, ProviderResult]" = field(default_factory=dict)
    errors: "dict[ProviderIdentifier, Exception]" = field(default_factory=dict)

    @property
    def attempted(self) -> "set[ProviderIdentifier]":
        return set(self.results) | set(self.errors)


@dataclass(frozen=True, slots=True)
class DailyUsage:
    """
    DailyUsage is one day's sample for a provider. date is a UTC
    calendar day since the upstream billing period is UTC-anchored.
    """

    date: "date"
    included_requests: "float"
    billed_requests: "float" = 0.0
    gross_amount: "float" = 0.0
    billed_amount: "float" = 0.0

    @property
    def is_weekend(self) -> "bool":
        # date.weekday(): Monday == 0 ... Saturday == 5, Sunday == 6
        return self.date.weekday() >= 5


@dataclass(frozen=True)
class UsageHistory:
    fetched_at: "datetime"
    # newest first, at most one billing period
    days: "list[DailyUsage]" = field(default_factory=list)

    @property
    def total_included_requests(self) -> "float":
        return sum(day.included_requests for day in self.days)

    @property
    def total_billed_amount(self) -> "float":
        return sum(day.billed_amount for day in self.days)

    @property
    def recent_days(self) -> "list[DailyUsage]":
        return sorted(self.days, key=lambda day: day.date, reverse=True)[:7]


class ConfidenceLevel(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def label(self) -> "str":
        return f"{self.value} prediction confidence"


@dataclass(frozen=True, slots=True)
class UsagePrediction:
    predicted_monthly_requests: "float"
    predicted_billed_amount: "float"
    confidence_level: "ConfidenceLevel"
    days_used_for_prediction: "int"


@dataclass(frozen=True, slots=True)
class Credential:
    """
    Credential is the opaque secret handed out by the credential
    lookup. account_id is only used by services that scope requests
    to an account (ChatGPT).
    """

    secret: "str" = field(repr=False)
    account_id: "str | None" = None
