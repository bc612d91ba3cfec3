from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):

    AWS_REGION: str = "us-east-1"
    AWS_PROFILE: str | None = None
    DYNAMODB_TABLE_NAME: str
    DYNAMODB_ENDPOINT_URL: str | None = None

    COGNITO_USER_POOL_CLIENT_ID: str

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_SECONDS: int = 7 * 24 * 60 * 60
    COOKIE_SECURE: bool = False

    API_ROOT_PATH: str = ""
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()
