from typing import Any, Protocol

import httpx
import structlog

from quotawatch.errors import AuthenticationFailed, DecodingError, NetworkError
from quotawatch.models import (
    Credential,
    ProviderIdentifier,
    ProviderKind,
    ProviderResult,
)

logger = structlog.get_logger()


class CredentialLookup(Protocol):
    """
    CredentialLookup hands out the opaque credential for a provider,
    or None when the provider is not configured. Implementations are
    read-only and must be safe to call from concurrent fetches.
    """

    def get_credential(
        self, identifier: "ProviderIdentifier"
    ) -> "Credential | None": ...


class UsageProvider(Protocol):
    """
    UsageProvider stands as a common protocol that all
    usage services must satisfy.

    kind is fixed per provider so callers can pick a rendering
    strategy without inspecting the fetched value.
    """

    @property
    def identifier(self) -> "ProviderIdentifier": ...

    @property
    def kind(self) -> "ProviderKind": ...

    async def fetch(self) -> "ProviderResult": ...


class HTTPUsageProvider:
    """
    HTTPUsageProvider carries the plumbing shared by every concrete
    provider: credential resolution and a JSON request helper that
    maps HTTP outcomes onto the provider error taxonomy.

    The HTTP client is shared across providers and owned by the
    caller; providers never close it.
    """

    identifier: "ProviderIdentifier"
    kind: "ProviderKind"

    def __init__(
        self,
        client: "httpx.AsyncClient",
        credentials: "CredentialLookup",
    ) -> "None":
        self._client = client
        self._credentials = credentials

    def _credential(self) -> "Credential":
        credential = self._credentials.get_credential(self.identifier)
        if credential is None or not credential.secret:
            logger.error("credential_missing", provider=self.identifier.value)
            raise AuthenticationFailed("credential not available", self.identifier)
        return credential

    async def _request_json(
        self,
        method: "str",
        url: "str",
        headers: "dict[str, str]",
        json_body: "Any" = None,
    ) -> "Any":
        """
        sends one request and returns the decoded JSON body.
        """
        logger.debug("provider_request", provider=self.identifier.value, url=url)
        try:
            resp = await self._client.request(
                method, url, headers=headers, json=json_body
            )
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"request to {url} failed: {exc!r}", self.identifier
            ) from exc

        # 401 travels over the network layer but is a credential problem
        if resp.status_code == 401:
            raise AuthenticationFailed("credential rejected (HTTP 401)", self.identifier)

        if not 200 <= resp.status_code < 300:
            logger.error(
                "provider_http_error",
                provider=self.identifier.value,
                status_code=resp.status_code,
                body=resp.text[:200],
            )
            raise NetworkError(
                f"HTTP {resp.status_code}",
                self.identifier,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise DecodingError("response body is not JSON", self.identifier) from exc

    def _expect_object(self, payload: "Any") -> "dict[str, Any]":
        if not isinstance(payload, dict):
            raise DecodingError(
                f"expected a JSON object, got {type(payload).__name__}",
                self.identifier,
            )
        return payload
