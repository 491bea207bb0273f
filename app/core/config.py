# app/core/config.py

import os
from functools import lru_cache
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Droplist configuration, read from the environment and an optional .env file."""
    # Database settings
    DATABASE_URL: str = ""

    # Public base URL of this deployment (used to build image URLs eBay can fetch)
    APP_URL: str = "http://localhost:8000"

    # eBay OAuth
    EBAY_ENVIRONMENT: str = "sandbox"  # "sandbox" | "production"
    EBAY_CLIENT_ID: str = ""
    EBAY_CLIENT_SECRET: str = ""
    EBAY_OAUTH_REDIRECT_URI: str = ""

    # eBay listing defaults
    EBAY_DEFAULT_MARKETPLACE_ID: str = "EBAY_US"
    EBAY_DEFAULT_CURRENCY: str = "USD"

    # eBay marketplace account deletion notifications
    EBAY_VERIFICATION_TOKEN: str = ""
    EBAY_WEBHOOK_ENDPOINT: str = ""  # Overrides the endpoint URL computed from the request

    # Image analysis
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_API_URL: str = "https://api.openai.com/v1/responses"

    # Drafts
    DRAFT_MAX_IMAGES: int = 8
    DRAFT_MAX_IMAGE_CHARS: int = 2_000_000
    # A draft left in "publishing" longer than this may be claimed again
    DRAFT_PUBLISH_CLAIM_TIMEOUT_SECONDS: int = 600

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def ebay_sandbox(self) -> bool:
        return self.EBAY_ENVIRONMENT.lower() != "production"

    @property
    def oauth_redirect_uri(self) -> str:
        """
        Redirect URI used for BOTH the authorize step and the code exchange.
        Must match a redirect URI registered with the eBay application exactly.
        """
        explicit = (self.EBAY_OAUTH_REDIRECT_URI or "").strip()
        if explicit:
            return explicit
        return f"{self.APP_URL.strip().rstrip('/')}/stores/connect/callback"


@lru_cache()
def get_settings():
    """One Settings instance per process; tests override it via dependency_overrides"""
    return Settings()
