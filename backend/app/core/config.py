"""
Application configuration using Pydantic Settings.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Workload Console"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"
    DEBUG: bool = False

    # Database Schema
    DB_SCHEMA: str = "workload_console"

    # Database
    DATABASE_URL: str

    # Security
    API_KEY_SALT: str
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost"

    # Container engine
    DOCKER_BINARY: str = "docker"
    # None means a hung engine call blocks the request until it exits
    DOCKER_COMMAND_TIMEOUT: Optional[float] = None

    # Deployment Execution
    DEPLOYMENT_CONTAINER_PREFIX: str = "workload"
    DEPLOYMENT_DEFAULT_IMAGE: str = "nginx:alpine"
    DEPLOYMENT_PUBLIC_HOST: str = "localhost"
    # Off by default: declared CPU can exceed what the host offers and fail the run
    DEPLOYMENT_APPLY_RESOURCE_LIMITS: bool = False
    DEPLOYMENT_PORT_FALLBACK_START: int = 10000
    DEPLOYMENT_PORT_FALLBACK_END: int = 60000

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


settings = Settings()
