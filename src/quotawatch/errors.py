from quotawatch.models import ProviderIdentifier


class ProviderError(Exception):
    """
    ProviderError is the base of every failure a provider fetch
    reports. The manager captures these per provider; they never
    escape a refresh cycle.
    """

    kind: "str" = "provider_error"

    def __init__(
        self,
        message: "str",
        provider: "ProviderIdentifier | None" = None,
    ) -> "None":
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> "str":
        if self.provider is None:
            return self.message
        return f"{self.provider.display_name}: {self.message}"


class AuthenticationFailed(ProviderError):
    """
    missing or rejected credential. Also raised for HTTP 401.
    """

    kind = "authentication_failed"


class NetworkError(ProviderError):
    """
    transport failure or a status outside 200-299.
    """

    kind = "network_error"

    def __init__(
        self,
        message: "str",
        provider: "ProviderIdentifier | None" = None,
        status_code: "int | None" = None,
    ) -> "None":
        super().__init__(message, provider)
        self.status_code = status_code


class DecodingError(ProviderError):
    """
    a field needed to compute the usage figure could not be decoded.
    """

    kind = "decoding_error"
