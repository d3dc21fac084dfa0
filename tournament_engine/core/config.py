from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_TITLE: str = "Tournament Engine API"
    DATABASE_URL: str = "sqlite:///./tournaments.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"
    # Bounded retries for the conditional participant-counter update
    CAPACITY_RETRY_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
