from pydantic_settings import BaseSettings, SettingsConfigDict
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    app_name: str = "Quiz Engine"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database Configuration
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./quiz_engine.db")

    # Session Configuration
    session_token_prefix: str = "sess_"
    default_passing_score: int = int(os.getenv("DEFAULT_PASSING_SCORE", 70))
    timezone: str = os.getenv("TIMEZONE", "UTC")

    # Expiration sweeper
    scheduler_enabled: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
    session_cleanup_interval_minutes: int = int(os.getenv("SESSION_CLEANUP_INTERVAL_MINUTES", 5))
    session_cleanup_batch_size: int = int(os.getenv("SESSION_CLEANUP_BATCH_SIZE", 100))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
