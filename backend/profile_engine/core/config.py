"""
Learning Profile Engine - Core Configuration
Pydantic Settings for application configuration with environment variable support
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Application
    APP_NAME: str = "Learning Profile Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    
    # API
    API_V1_PREFIX: str = "/api/v1"
    
    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "learning_profiles"
    DATABASE_URL_OVERRIDE: str = ""
    
    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )
    
    # Scoring & consolidation
    DEFAULT_SCORING_VERSION: str = "clp2"
    MIN_CONTRIBUTION_WEIGHT: float = 0.1
    CONFLICT_THRESHOLD: float = 0.3  # fraction of the scale span
    HIGH_DIFFERENTIAL_THRESHOLD: float = 0.6
    CONFLICT_DAMPENING_FACTOR: float = 0.5
    ESTABLISHED_CONFIDENCE_THRESHOLD: int = 80
    STRENGTH_COUNT: int = 2
    
    # Remote consolidation procedure (empty URL disables it)
    REMOTE_CONSOLIDATION_URL: str = ""
    REMOTE_CONSOLIDATION_TIMEOUT_SECONDS: float = 5.0
    
    # Persistence
    PERSISTENCE_TIMEOUT_SECONDS: float = 10.0
    
    # CORS - stored as comma-separated string
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173"
    
    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
