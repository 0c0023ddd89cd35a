"""Configuration management for the Feed Gateway."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read once from the environment at startup."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )
    
    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=3000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")
    
    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")
    
    # Remote feed service credentials
    STREAM_API_KEY: str = Field(default="API_KEY", description="Feed service API key")
    STREAM_API_SECRET: str = Field(default="API_SECRET", description="Feed service API secret")
    STREAM_APP_ID: str = Field(default="APP_ID", description="Feed service application id")
    STREAM_BASE_URL: str = Field(
        default="https://feeds.stream-io-api.com",
        description="Base URL of the feed service REST API"
    )
    STREAM_TIMEOUT: float = Field(default=6.0, gt=0, description="Remote call timeout in seconds")
    
    # Route defaults
    TOKEN_VALIDITY_SECONDS: int = Field(default=7600000, ge=1, description="User token validity window")
    MODERATOR_USER_ID: str = Field(default="moderator", description="Identity used when flagging content")
    COMMENTS_OBJECT_ID: str = Field(default="public-activity", description="Default object for comment listing")
    
    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()
    
    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    
    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins."""
        return self.CORS_ORIGINS

# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings
