import pytest
from prometheus_client import CollectorRegistry

from quotawatch.logging import setup_logging
from quotawatch.models import Credential, ProviderIdentifier


@pytest.fixture(autouse=True, scope="session")
def _logging() -> "None":
    """
    routes structlog through stdlib logging on stderr so that command
    output on stdout stays parseable.
    """
    setup_logging("debug")


class StaticCredentials:
    """
    credential lookup backed by a plain dict.
    """

    def __init__(
        self, credentials: "dict[ProviderIdentifier, Credential] | None" = None
    ) -> "None":
        self._credentials = dict(credentials or {})

    def get_credential(
        self, identifier: "ProviderIdentifier"
    ) -> "Credential | None":
        return self._credentials.get(identifier)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def credentials() -> "StaticCredentials":
    return StaticCredentials(
        {
            ProviderIdentifier.COPILOT: Credential(secret="gho_test"),
            ProviderIdentifier.CODEX: Credential(secret="eyJ.test", account_id="acct-1"),
            ProviderIdentifier.OPENROUTER: Credential(secret="or-test"),
            ProviderIdentifier.NANOGPT: Credential(secret="nano-test"),
            ProviderIdentifier.ZAI_CODING_PLAN: Credential(secret="zai-test"),
        }
    )


@pytest.fixture()
def make_credentials() -> "type[StaticCredentials]":
    return StaticCredentials


@pytest.fixture()
def no_credentials() -> "StaticCredentials":
    return StaticCredentials()

