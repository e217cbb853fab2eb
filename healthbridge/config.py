"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
All secrets and provider URLs are loaded once at startup and injected
into components; nothing reads the environment mid-request.
"""

from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode
from pydantic import Field, field_validator, ConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///./healthbridge.db",
        description="Database connection URL"
    )

    # === CORS ===
    # NoDecode: the env value is a comma-separated string, not JSON
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )

    # === Identity provider ===
    auth_user_url: Optional[str] = Field(
        default=None,
        description="Endpoint resolving a bearer token to a user (e.g. Supabase /auth/v1/user)"
    )
    auth_api_key: Optional[str] = Field(
        default=None,
        description="API key sent as `apikey` header to the identity endpoint"
    )

    # === Google Fit ===
    google_fit_client_id: Optional[str] = Field(default=None)
    google_fit_client_secret: Optional[str] = Field(default=None)
    google_fit_redirect_url: Optional[str] = Field(default=None)
    google_fit_state_secret: Optional[str] = Field(default=None)
    google_fit_token_enc_key: Optional[str] = Field(
        default=None,
        description="Base64 AES key for provider token encryption"
    )
    google_fit_authorize_url: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth"
    )
    google_fit_token_url: str = Field(default="https://oauth2.googleapis.com/token")
    google_fit_revoke_url: str = Field(default="https://oauth2.googleapis.com/revoke")
    google_fit_dataset_url: str = Field(
        default="https://www.googleapis.com/fitness/v1/users/me/dataset:aggregate"
    )

    # === OAuth / tokens ===
    oauth_state_ttl_seconds: int = Field(default=600)
    token_refresh_margin_seconds: int = Field(default=60)

    # === Metrics ===
    metrics_timezone: str = Field(
        default="UTC",
        description="Timezone defining the 'local day' of a pull"
    )
    governance_retention_days: int = Field(default=183)

    # === Scheduled pulls ===
    scheduled_pull_enabled: bool = Field(default=False)
    scheduled_pull_interval_seconds: int = Field(default=3600)

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def google_fit_configured(self) -> bool:
        """True when every secret needed for the OAuth handshake is present."""
        return all([
            self.google_fit_client_id,
            self.google_fit_client_secret,
            self.google_fit_redirect_url,
            self.google_fit_state_secret,
            self.google_fit_token_enc_key,
        ])

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency returning the process-wide settings."""
    return settings
