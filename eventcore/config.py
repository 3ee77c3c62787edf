from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres (reservation ledger, profiles, event projections, delivery logs)
    DATABASE_URL: str = "postgresql://localhost:5432/eventcore"

    # Redis (ledger live stream + local reservation cache)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Transactional email (Resend)
    RESEND_API_KEY: str | None = None
    EMAIL_FROM: str = "Popera <notifications@gopopera.ca>"

    # SMS gateway (Twilio)
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_PHONE_NUMBER: str | None = None
    TWILIO_MESSAGING_SERVICE_SID: str | None = None

    # Links and footers rendered into emails
    PUBLIC_BASE_URL: str = "https://gopopera.ca"
    SUPPORT_EMAIL: str = "support@gopopera.ca"

    # Shared secret for internal trigger endpoints
    INTERNAL_API_KEY: str | None = None

    # =================================================================
    # NOTIFICATION + RECONCILIATION TIMING
    # =================================================================
    PROVIDER_TIMEOUT_SECONDS: float = 8.0
    RESERVATION_SYNC_INTERVAL_SECONDS: float = 30.0
    FOLLOW_SUGGESTION_INTERVAL_SECONDS: float = 3600.0
    FOLLOW_SUGGESTION_MIN_HOURS: int = 24
    FOLLOW_SUGGESTION_MAX_HOURS: int = 48

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)

    def sms_configured(self) -> bool:
        """Twilio needs credentials plus either a messaging service or a sender number."""
        has_sender = bool(self.TWILIO_MESSAGING_SERVICE_SID or self.TWILIO_PHONE_NUMBER)
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and has_sender)

    def event_url(self, event_id: str) -> str:
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/event/{event_id}"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
