from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8098
    API_PREFIX: str = "/v1"
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///postboard.db"
    SQL_ECHO: bool = False

    # Pagination
    PAGE_SIZE: int = 15
    MAX_PAGE_SIZE: int = 100

    # Auth
    AUTH_JWT_SECRET: str = "postboard-dev-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_TOKEN_TTL_MINUTES: int = 60
    AUTH_TOKEN_HEADERS: str = "authorization,x-auth-token"
    BCRYPT_ROUNDS: int = 12

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
