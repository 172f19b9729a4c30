"""Application configuration with environment variables."""

from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from intake_api.core.constants import DEFAULT_ALLOWED_VERSIONS, DEFAULT_MAX_BODY_BYTES
from intake_api.core.url_validation import validate_notify_webhook_url

# Comma-separated env values parsed once into immutable sets
CsvSet = Annotated[frozenset[str], NoDecode]


def _split_csv(value: object, *, lower: bool = False) -> object:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = (item.strip() for item in value.split(","))
        return frozenset(item.lower() if lower else item for item in items if item)
    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version
    VERSION: str = "1.00.00"

    # Database
    DATABASE_URL: str

    # Proxy/Edge Settings
    # Set to True when running behind Cloudflare/nginx to trust client IP headers
    TRUST_PROXY_HEADERS: bool = False
    CLIENT_IP_HEADER: str = "CF-Connecting-IP"

    # Public intake
    ALLOWED_ORIGINS: CsvSet = frozenset()  # exact origins, "*" means any
    ALLOWED_VERSIONS: CsvSet = DEFAULT_ALLOWED_VERSIONS
    MAX_BODY_BYTES: int = DEFAULT_MAX_BODY_BYTES
    INTAKE_IP_SALT: str = ""  # Generate with: intake-api generate-secret
    INTAKE_HMAC_SECRET: str = ""  # Enables X-Intake-HMAC verification when set

    # Admin workflow
    ADMIN_EMAILS: CsvSet = frozenset()  # Empty = any authenticated identity
    ADMIN_UI_ORIGIN: str = ""
    ADMIN_IDENTITY_HEADER: str = "Cf-Access-Authenticated-User-Email"

    # Metadata-only notification webhook (Discord/Slack compatible)
    NOTIFY_WEBHOOK_URL: str = ""
    NOTIFY_TIMEOUT_SECONDS: float = 5.0

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @field_validator("ALLOWED_ORIGINS", "ALLOWED_VERSIONS", mode="before")
    @classmethod
    def _parse_exact_set(cls, value: object) -> object:
        return _split_csv(value)

    @field_validator("ADMIN_EMAILS", mode="before")
    @classmethod
    def _parse_email_set(cls, value: object) -> object:
        return _split_csv(value, lower=True)

    @field_validator("ALLOWED_VERSIONS")
    @classmethod
    def _require_versions(cls, value: frozenset[str]) -> frozenset[str]:
        return value or DEFAULT_ALLOWED_VERSIONS

    @field_validator("MAX_BODY_BYTES")
    @classmethod
    def _positive_body_limit(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_MAX_BODY_BYTES

    @field_validator("NOTIFY_WEBHOOK_URL")
    @classmethod
    def _check_webhook_url(cls, value: str) -> str:
        if not value.strip():
            return ""
        return validate_notify_webhook_url(value)

    @property
    def hmac_enabled(self) -> bool:
        """Signature verification is active only when a secret is configured."""
        return bool(self.INTAKE_HMAC_SECRET)

    @property
    def is_dev(self) -> bool:
        return self.ENV == "dev"


settings = Settings()
