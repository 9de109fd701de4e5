"""
Application Configuration Settings

Environment-based configuration management for the annotation controls service.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "Annotation Controls"
    DEBUG: bool = Field(default=False)
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./annotations.db")

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"]
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: str = Field(default="logs")
    LOG_TO_FILE: bool = Field(default=False)

    # Voting: "inline" stores markers on the annotation's own tags,
    # "reply" stores each vote as a reply annotation
    VOTE_SCHEME: str = Field(default="inline", pattern="^(inline|reply)$")

    # Service configuration (the embedding service may switch these off)
    SERVICE_ALLOW_FLAGGING: bool = True
    SERVICE_ENABLE_SHARE_LINKS: bool = True

    # Accounts and feature flags
    DEFAULT_AUTHORITY: str = Field(default="hypothes.is")
    FEATURES: List[str] = Field(default=["client_display_names"])

    # Links
    USERNAME_URL: Optional[str] = None
    USER_LINK_TEMPLATE: str = "https://hypothes.is/users/{user}"
    TAG_SEARCH_LINK_TEMPLATE: str = "https://hypothes.is/search?q=tag:{tag}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def is_feature_enabled(self, feature: str) -> bool:
        """Check whether a named client feature flag is on."""
        return feature in self.FEATURES

    def flagging_enabled(self) -> bool:
        return self.SERVICE_ALLOW_FLAGGING is not False

    def sharing_enabled(self) -> bool:
        return self.SERVICE_ENABLE_SHARE_LINKS is not False


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency returning the active settings instance."""
    return settings
