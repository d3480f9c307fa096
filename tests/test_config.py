from pathlib import Path

import pytest

from quotawatch.config import DEFAULT_HISTORY_DIR, Config, parse_overage_rates
from quotawatch.models import ProviderIdentifier

ENV_VARS = [
    "GITHUB_COPILOT_TOKEN",
    "OPENAI_ACCESS_TOKEN",
    "CHATGPT_ACCOUNT_ID",
    "OPENROUTER_API_KEY",
    "NANOGPT_API_KEY",
    "ZAI_API_KEY",
    "QUOTAWATCH_HISTORY_DIR",
    "QUOTAWATCH_OVERAGE_RATES",
    "QUOTAWATCH_COST_PER_REQUEST",
    "QUOTAWATCH_HTTP_TIMEOUT",
]


@pytest.fixture()
def clean_env(monkeypatch: "pytest.MonkeyPatch") -> "pytest.MonkeyPatch":
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigFromEnv:
    def test_defaults(self, clean_env: "pytest.MonkeyPatch") -> "None":
        config = Config.from_env()

        assert config.copilot_token == ""
        assert config.zai_api_key == ""
        assert config.history_dir == DEFAULT_HISTORY_DIR
        assert config.overage_rates == {ProviderIdentifier.COPILOT: 0.04}
        assert config.cost_per_request == 0.04
        assert config.http_timeout == 10.0

    def test_reads_env_vars(self, clean_env: "pytest.MonkeyPatch") -> "None":
        clean_env.setenv("GITHUB_COPILOT_TOKEN", "gho_abc")
        clean_env.setenv("OPENAI_ACCESS_TOKEN", "eyJ.abc")
        clean_env.setenv("CHATGPT_ACCOUNT_ID", "acct-9")
        clean_env.setenv("NANOGPT_API_KEY", "nano")
        clean_env.setenv("QUOTAWATCH_HISTORY_DIR", "/var/lib/quotawatch")
        clean_env.setenv("QUOTAWATCH_COST_PER_REQUEST", "0.1")
        clean_env.setenv("QUOTAWATCH_HTTP_TIMEOUT", "2.5")

        config = Config.from_env()

        assert config.copilot_token == "gho_abc"
        assert config.openai_access_token == "eyJ.abc"
        assert config.chatgpt_account_id == "acct-9"
        assert config.nanogpt_api_key == "nano"
        assert config.history_dir == Path("/var/lib/quotawatch")
        assert config.cost_per_request == 0.1
        assert config.http_timeout == 2.5

    def test_overage_rates_override_defaults(
        self, clean_env: "pytest.MonkeyPatch"
    ) -> "None":
        clean_env.setenv("QUOTAWATCH_OVERAGE_RATES", "copilot=0.05, nanogpt=0.01")

        config = Config.from_env()

        assert config.overage_rate(ProviderIdentifier.COPILOT) == 0.05
        assert config.overage_rate(ProviderIdentifier.NANOGPT) == 0.01
        assert config.overage_rate(ProviderIdentifier.CODEX) == 0.0


class TestParseOverageRates:
    def test_empty(self) -> "None":
        assert parse_overage_rates("") == {}

    def test_display_names_are_accepted(self) -> "None":
        assert parse_overage_rates("GitHub Copilot=0.04,") == {
            ProviderIdentifier.COPILOT: 0.04
        }

    @pytest.mark.parametrize("raw", ["copilot", "claude=0.1", "copilot=cheap"])
    def test_invalid(self, raw: "str") -> "None":
        with pytest.raises(ValueError):
            parse_overage_rates(raw)
