"""Configuration for the API client."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings with env/.env override support."""

    api_key: str | None = None
    organization: str | None = None
    base_url: str = "https://api.openai.com"
    timeout: float = 60.0
    default_completion_model: str = "text-davinci-003"
    default_chat_model: str = "gpt-3.5-turbo"
    verbose: bool = False

    model_config = {
        "env_prefix": "OPENAI_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def endpoint_url(self, path: str) -> str:
        """Get the full URL for an API path such as ``/v1/models``."""
        base = self.base_url.rstrip("/")
        # Handle both base URL and /v1 URL formats
        if base.endswith("/v1") and path.startswith("/v1/"):
            return f"{base}{path[3:]}"
        return f"{base}{path}"
