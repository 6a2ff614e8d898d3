"""
Reporting Engine - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "Reporting Engine"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # ===========================================
    # BACKEND API
    # Rows are fetched from and imports are posted to this service.
    # ===========================================
    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 30.0
    payroll_import_path: str = "/payroll/imports/gross-pay"
    targets_path: str = "/reporting/reports/targets/set"
    
    # ===========================================
    # IMPORT PROGRESS
    # ===========================================
    import_progress_interval_ms: int = 200
    
    # ===========================================
    # EXCEL EXPORT
    # ===========================================
    currency_symbol: str = "£"
    default_sheet_name: str = "Sheet1"
    # Used when the active theme variables are empty or malformed
    theme_fallback_fill: str = "FFEDD5"
    theme_fallback_font: str = "9A3412"
    
    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:8000,http://127.0.0.1:8000"
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"
    
    @property
    def logging_level(self) -> int:
        """Numeric log level; ``debug`` forces DEBUG and unknown names mean INFO."""
        if self.debug:
            return logging.DEBUG
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
