from quotawatch.config import Config
from quotawatch.models import Credential, ProviderIdentifier


class EnvCredentialStore:
    """
    EnvCredentialStore serves credentials taken from the environment
    through Config. The mapping is built once and never mutated, so
    concurrent lookups need no locking.
    """

    def __init__(self, config: "Config") -> "None":
        self._credentials: "dict[ProviderIdentifier, Credential]" = {}

        simple_keys = {
            ProviderIdentifier.COPILOT: config.copilot_token,
            ProviderIdentifier.OPENROUTER: config.openrouter_api_key,
            ProviderIdentifier.NANOGPT: config.nanogpt_api_key,
            ProviderIdentifier.ZAI_CODING_PLAN: config.zai_api_key,
        }
        for identifier, secret in simple_keys.items():
            if secret:
                self._credentials[identifier] = Credential(secret=secret)

        # Codex requests are scoped to a ChatGPT account
        if config.openai_access_token and config.chatgpt_account_id:
            self._credentials[ProviderIdentifier.CODEX] = Credential(
                secret=config.openai_access_token,
                account_id=config.chatgpt_account_id,
            )

    def get_credential(
        self, identifier: "ProviderIdentifier"
    ) -> "Credential | None":
        return self._credentials.get(identifier)

    @property
    def configured(self) -> "list[ProviderIdentifier]":
        return list(self._credentials)
