"""Application configuration with environment variables."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./coursevault.db"
    CREATE_TABLES_ON_STARTUP: bool = True

    # JWT Settings
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Application
    APP_NAME: str = "CourseVault API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Authoring limits
    MAX_BLOCKS: int = 64
    MAX_CONTENT_LENGTH: int = 4096
    MAX_QUESTIONS: int = 64
    MAX_QUESTION_LENGTH: int = 2048
    MAX_CHOICES: int = 16
    MAX_CHOICE_LENGTH: int = 1024
    MAX_TITLE_LENGTH: int = 128
    MAX_DESCRIPTION_LENGTH: int = 512

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Create global settings instance
settings = Settings()
