import os
from dataclasses import dataclass, field
from pathlib import Path

from quotawatch.models import ProviderIdentifier

# USD per request beyond the entitlement. Only providers that permit
# overage need an entry; Copilot bills premium requests at $0.04.
DEFAULT_OVERAGE_RATES: "dict[ProviderIdentifier, float]" = {
    ProviderIdentifier.COPILOT: 0.04,
}

DEFAULT_HISTORY_DIR = Path.home() / ".local" / "share" / "quotawatch" / "history"


def parse_overage_rates(raw: "str") -> "dict[ProviderIdentifier, float]":
    """
    parses "copilot=0.04,nanogpt=0.01" into a rate table. Unknown
    providers and malformed entries raise ValueError.
    """
    rates: "dict[ProviderIdentifier, float]" = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, value = entry.partition("=")
        identifier = ProviderIdentifier.lookup(name)
        if not sep or identifier is None:
            raise ValueError(f"invalid overage rate entry: {entry!r}")
        rates[identifier] = float(value)
    return rates


@dataclass
class Config:
    log_level: "str" = "info"
    # console or json
    log_format: "str" = "console"
    # per-request timeout in seconds
    http_timeout: "float" = 10.0

    copilot_token: "str" = ""
    openai_access_token: "str" = ""
    chatgpt_account_id: "str" = ""
    openrouter_api_key: "str" = ""
    nanogpt_api_key: "str" = ""
    zai_api_key: "str" = ""

    history_dir: "Path" = DEFAULT_HISTORY_DIR
    overage_rates: "dict[ProviderIdentifier, float]" = field(
        default_factory=lambda: dict(DEFAULT_OVERAGE_RATES)
    )
    # forecaster unit rate, USD per request over the entitlement
    cost_per_request: "float" = 0.04

    @classmethod
    def from_env(cls) -> "Config":
        overage_rates = dict(DEFAULT_OVERAGE_RATES)
        overage_rates.update(
            parse_overage_rates(os.environ.get("QUOTAWATCH_OVERAGE_RATES", ""))
        )
        history_dir = os.environ.get("QUOTAWATCH_HISTORY_DIR", "")
        return cls(
            http_timeout=float(os.environ.get("QUOTAWATCH_HTTP_TIMEOUT", "10")),
            copilot_token=os.environ.get("GITHUB_COPILOT_TOKEN", ""),
            openai_access_token=os.environ.get("OPENAI_ACCESS_TOKEN", ""),
            chatgpt_account_id=os.environ.get("CHATGPT_ACCOUNT_ID", ""),
            openrouter_api_key=os.environ.get("OPENROUTER_API_KEY", ""),
            nanogpt_api_key=os.environ.get("NANOGPT_API_KEY", ""),
            zai_api_key=os.environ.get("ZAI_API_KEY", ""),
            history_dir=Path(history_dir).expanduser() if history_dir else DEFAULT_HISTORY_DIR,
            overage_rates=overage_rates,
            cost_per_request=float(
                os.environ.get("QUOTAWATCH_COST_PER_REQUEST", "0.04")
            ),
        )

    def overage_rate(self, identifier: "ProviderIdentifier") -> "float":
        return self.overage_rates.get(identifier, 0.0)
