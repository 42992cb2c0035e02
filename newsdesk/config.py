from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None
    debug: bool = False

    # Remote Data Gateway (hosted table API + serverless functions)
    gateway_url: str = "http://localhost:54321"
    gateway_key: Optional[str] = None
    gateway_timeout_seconds: float = 15.0

    # Queue classification
    stale_processing_minutes: int = 10
    default_max_attempts: int = 3

    # Reconciliation views
    pending_articles_limit: int = 50
    activity_log_limit: int = 10
    activity_function_name: Optional[str] = "universal-scraper"

    # Panel polling
    poll_interval_seconds: float = 30.0
    activity_poll_interval_seconds: float = 30.0
    poller_autostart: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "NEWSDESK_"

settings = Settings()
