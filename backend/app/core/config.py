from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    ENV: str = "prod"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    # Shared secret of the external auth provider (HS256 access tokens)
    JWT_SECRET: str
    JWT_AUDIENCE: str | None = "authenticated"

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 1800

    ALLOWED_HOSTS: str = "localhost,127.0.0.1"
    SECURITY_HEADERS_ENABLED: bool = True

    # Rating scale shared by teams and players
    RATING_FLOOR: float = 1.0
    RATING_CEILING: float = 10.0
    TEAM_RESULT_DELTA: float = 0.3
    SCORER_RATING_DELTA: float = 0.3
    MVP_RATING_BONUS: float = 0.5

settings = Settings()
