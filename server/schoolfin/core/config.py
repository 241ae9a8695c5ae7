"""
schoolfin/core/config.py
Configuration settings using Pydantic
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings, read once from the environment / .env"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    PROJECT_NAME: str = "SchoolFin API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, production
    API_V1_PREFIX: str = "/api/v1"

    # Security
    SECRET_KEY: str  # Generate with: openssl rand -hex 32
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str  # anon/public key

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Listing
    MAX_LIST_LIMIT: int = 500

    # School profile
    APP_NAME: str = "SchoolFinAI"
    SCHOOL_NAME: str = "School Name"
    SCHOOL_TAGLINE: str = "Excellence in Education"
    SCHOOL_ADDRESS: str = ""
    SCHOOL_PHONE: str = ""
    SCHOOL_EMAIL: str = ""
    SCHOOL_WEBSITE: str = ""
    SCHOOL_LOGO_URL: str = "/images/default-logo.png"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
