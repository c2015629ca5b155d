# app/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the root .env).
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str

    # --- Database URLs ---
    DATABASE_URL_PROD: str
    DATABASE_URL_LOCAL: str

    # Other secrets
    JWT_SECRET: str

    # --- Event generation tunables ---
    # Upper bound on how far a single generation batch may reach.
    MAX_GENERATION_HORIZON_DAYS: int = 14
    # The next batch runs this many days before its first undone date.
    GENERATION_LEAD_DAYS: int = 7
    # Largest range accepted by the manual generation endpoint.
    MAX_GENERATION_DATE_RANGE_DAYS: int = 30
    MAX_SERIES_DURATION_MONTHS: int = 6
    MAX_START_DATE_DAYS_FROM_NOW: int = 30

    # --- Task dispatcher ---
    SCHEDULER_ENABLED: bool = True
    TASK_DISPATCH_INTERVAL_SECONDS: int = 30
    TASK_DISPATCH_BATCH_SIZE: int = 100

    LOG_LEVEL: str = "INFO"

    # --- Dynamic Properties ---
    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
