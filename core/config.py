from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, ConfigDict, Field
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./practice.db",
        description="Async SQLAlchemy connection string (postgresql+asyncpg://... in production)",
    )

    # Redis
    REDIS_URL: str = Field("redis://localhost:6379/0")
    PROGRESS_LOCK_TIMEOUT_SECONDS: float = 10.0

    # Auth
    AUTH_SECRET: str = Field("dev-secret-change-me", description="HMAC key used to sign API tokens")
    TOKEN_TTL_SECONDS: int = 2592000  # 30 days

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Environment
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False


class PracticeConfig(BaseModel):
    """Fixed tuning of the selection engine and the skill updater.

    Not read from the environment. Components take an instance so tests can
    swap in alternate values.
    """
    model_config = ConfigDict(frozen=True)

    questions_per_level: int = 30
    level_up_threshold: float = 0.6
    skill_learning_rate: float = 0.1

    # Radius of the candidate query window around the target
    difficulty_range: float = 0.15
    # Half-width of the reported min/max around the target
    difficulty_jitter: float = 0.1
    target_floor: float = 0.2
    target_ceiling: float = 0.9

    recent_questions_cap: int = 300
    candidate_pool_limit: int = 200
    stale_after_days: int = 30

    initial_skill: float = 0.5
    initial_level: int = 1


DEFAULT_PRACTICE_CONFIG = PracticeConfig()

settings = Settings()
