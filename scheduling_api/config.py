# scheduling_api/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "appointment_scheduling"
    ENV: str = "dev"

    # ===== DB =====
    # Production points DATABASE_URL at Postgres; local runs fall back to SQLite.
    DATABASE_URL: str = "sqlite:///./appointments.db"

    # Pool options (ignored for SQLite)
    DB_POOL_SIZE: int = 2
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # Startup retry: waits BACKOFF ** attempt seconds (2, 4, 8, 16, 32)
    DB_INIT_RETRIES: int = 5
    DB_INIT_BACKOFF_SECONDS: float = 2.0

    # ===== Working hours and slots =====
    CLINIC_OPEN_HOUR: int = 9     # 09:00
    CLINIC_CLOSE_HOUR: int = 17   # 17:00 (exclusive)
    SLOT_MINUTES: int = 30
    DEFAULT_DURATION_MIN: int = 30

    # ===== HTTP =====
    CORS_ORIGINS: List[str] = ["*"]

    def model_post_init(self, __context) -> None:
        """
        Sanity checks on the working window so slot generation never loops
        forever or yields an inverted day.
        """
        if not (0 <= self.CLINIC_OPEN_HOUR < self.CLINIC_CLOSE_HOUR <= 24):
            raise ValueError(
                f"Invalid working hours: {self.CLINIC_OPEN_HOUR}-{self.CLINIC_CLOSE_HOUR}"
            )
        if self.SLOT_MINUTES <= 0:
            raise ValueError("SLOT_MINUTES must be positive")
        if self.DB_INIT_RETRIES < 0:
            raise ValueError("DB_INIT_RETRIES cannot be negative")

    @property
    def is_dev(self) -> bool:
        return self.ENV.lower() in ("dev", "development", "local")


settings = Settings()
