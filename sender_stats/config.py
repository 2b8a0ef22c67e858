"""
Centralized configuration using Pydantic Settings.

All environment variables are loaded and validated here.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Stats database (PostgreSQL)
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "sender_stats"
    database_user: str = "sender_stats"
    database_password: str = ""

    # Gmail API
    gmail_credentials_file: str = "credentials.json"
    gmail_token_file: str = "tokencache.json"
    gmail_user_id: str = "me"
    gmail_page_size: int = 500
    gmail_include_spam_trash: bool = False
    gmail_message_format: str = "full"

    # Processing
    max_retries: int = 3  # Extra passes after the first failure

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def database_url(self) -> str:
        """PostgreSQL connection URL for the stats database."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )


# Global settings instance
settings = Settings()
