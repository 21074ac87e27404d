from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Showtime Engine API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "showtime_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0

    # Compensation (seat release after a failed booking write)
    COMPENSATION_MAX_ATTEMPTS: int = 5
    COMPENSATION_BACKOFF_SECONDS: float = 0.2
    COMPENSATION_WORKERS: int = 4

    BOOKING_NUMBER_PREFIX: str = "SHW"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
