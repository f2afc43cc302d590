"""Application configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings exposed via dependency injection throughout the app."""

    # Read .env with BOM tolerance; case-sensitive keys
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=True,
    )

    APP_NAME: str = "ehostelz API"
    ENV: str = "dev"  # dev | staging | prod
    DEBUG: bool = True

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    # Oracle APEX (ORDS) backend
    APEX_API_BASE: str = "https://apex.ehostelz.com/ords/jee_management_system/web/api"
    APEX_TIMEOUT_SEC: float = 10.0
    # ORDS pages collections; follow hasMore up to this many pages per request.
    APEX_MAX_PAGES: int = 20
    # Outbound calls run in worker threads; bound how many run at once.
    HTTP_MAX_CONCURRENCY: int = 8

    # Option caching and retry
    PROVINCE_STALE_MINUTES: int = 60
    OPTION_STALE_MINUTES: int = 30
    REQUIRED_LEVEL_RETRIES: int = 3
    OPTIONAL_LEVEL_RETRIES: int = 1
    REQUIRED_RETRY_DELAY_SEC: float = 1.0
    OPTIONAL_RETRY_DELAY_SEC: float = 0.5
    # Equal to the base delays by default, which makes the backoff fixed.
    RETRY_BACKOFF_CAP_SEC: float = 1.0

    # Selection chains
    STRICT_SELECTION: bool | None = None  # None: strict everywhere except prod
    CHAIN_IDLE_TTL_MINUTES: int = 30
    CHAIN_MAX_ACTIVE: int = 5000

    # Student portal
    STUDENT_SESSION_TTL_MINUTES: int = 12 * 60
    LOGIN_RATE: str = "10/minute"
    RESET_PASSWORD_RATE: str = "5/minute"
    LEDGER_PAGE_SIZE: int = 10

    MAX_REQUEST_BYTES: int = 64 * 1024

    @property
    def strict_selection(self) -> bool:
        """Unknown option ids fail loudly in development and are ignored in prod."""
        if self.STRICT_SELECTION is not None:
            return self.STRICT_SELECTION
        return self.ENV != "prod"


settings = Settings()
