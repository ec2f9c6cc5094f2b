"""Application configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str = "sqlite:///./dock.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Sync
    default_sync_interval_minutes: int = 10
    # Periodic sync for projects with sync_enabled; manual triggers work either way.
    scheduler_enabled: bool = True

    # GitHub
    # Single personal access token used for every project (GITHUB_PAT).
    github_pat: str | None = None
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0

    # Rate limiting: throttled calls are retried once if the wait is within this bound.
    rate_limit_max_wait_seconds: float = 60.0
    rate_limit_margin_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
