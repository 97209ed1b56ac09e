from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = Field(default="dev")  # dev|prod|test
    LOG_LEVEL: str | None = Field(default=None)

    # Security
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALG: str = Field(default="HS256")
    JWT_EXPIRES_MIN: int = Field(default=60 * 12)

    # DB
    DATABASE_URL: str = Field(default="postgresql+psycopg://pcm:pcm@db:5432/pcm")
    DB_ECHO: bool = Field(default=False)

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:3000,http://localhost")

    # Files
    EXPORT_DIR: str = Field(default="/app/data/exports")

    # WBS
    WBS_CHANGES_DEFAULT_LIMIT: int = Field(default=100)

    # Seed (dev)
    SEED_DEMO: bool = Field(default=True)
    DEMO_ADMIN_LOGIN: str = Field(default="admin")
    DEMO_ADMIN_PASSWORD: str = Field(default="admin123")


settings = Settings()
