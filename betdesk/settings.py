#!/usr/bin/env python3
"""
Settings module for local vs production deployment
Uses pydantic-settings for environment variable management
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

from betdesk.config.env_loader import load_environment

LOADED_ENV_FILES = load_environment()


class Settings(BaseSettings):
    """Application settings with environment switching"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Environment detection
    ENV: str = Field(default="development", validation_alias="FLASK_ENV")
    IS_PRODUCTION: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # Database configuration - sqlite for local work, Postgres in production
    DATABASE_URL: str = "sqlite:///betdesk.db"

    # Redis backs the per-user rate limiter; absent means fail open
    REDIS_URL: Optional[str] = None

    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5000",
            "http://127.0.0.1:5000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )

    SECRET_KEY: str = "dev-secret-key-change-in-production"
    SESSION_LIFETIME_DAYS: int = 1

    # Wallet proof uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Game defaults (amounts in paise)
    DEFAULT_PLAYER_BALANCE: int = 1000
    COIN_FLIP_MULTIPLIER: float = 1.95

    # Liability cutoffs for risk tiers (paise)
    RISK_HIGH_THRESHOLD: int = 500000
    RISK_MEDIUM_THRESHOLD: int = 100000

    # Bets per minute per user on placement endpoints
    BET_RATE_LIMIT_PER_MINUTE: int = 60

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "/tmp/betdesk.log"

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENV == "production" or self.IS_PRODUCTION

    @property
    def is_local(self) -> bool:
        """Check if running locally"""
        return not self.is_production

    def get_database_config(self):
        """Get engine options based on environment"""
        if self.DATABASE_URL.startswith("sqlite"):
            return {}
        return {
            'pool_size': 5 if self.is_local else 10,
            'max_overflow': 10 if self.is_local else 20,
            'pool_timeout': 30,
            'pool_recycle': 3600,
            'pool_pre_ping': True,
        }

    def to_flask_config(self) -> dict:
        """Map settings onto Flask config keys"""
        return {
            'SECRET_KEY': self.SECRET_KEY,
            'SQLALCHEMY_DATABASE_URI': self.DATABASE_URL,
            'SQLALCHEMY_ENGINE_OPTIONS': self.get_database_config(),
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'REDIS_URL': self.REDIS_URL,
            'UPLOAD_DIR': self.UPLOAD_DIR,
            'MAX_CONTENT_LENGTH': self.MAX_UPLOAD_BYTES,
            'DEFAULT_PLAYER_BALANCE': self.DEFAULT_PLAYER_BALANCE,
            'COIN_FLIP_MULTIPLIER': self.COIN_FLIP_MULTIPLIER,
            'RISK_HIGH_THRESHOLD': self.RISK_HIGH_THRESHOLD,
            'RISK_MEDIUM_THRESHOLD': self.RISK_MEDIUM_THRESHOLD,
            'BET_RATE_LIMIT_PER_MINUTE': self.BET_RATE_LIMIT_PER_MINUTE,
            'SESSION_LIFETIME_DAYS': self.SESSION_LIFETIME_DAYS,
            'IS_PRODUCTION': self.is_production,
        }

    def masked_database_url(self) -> str:
        """DATABASE_URL with the password replaced, safe for console output"""
        scheme, sep, rest = self.DATABASE_URL.partition("://")
        credentials, at, host = rest.rpartition("@")
        if not at or ":" not in credentials:
            return self.DATABASE_URL
        user = credentials.split(":", 1)[0]
        return f"{scheme}{sep}{user}:***@{host}"

    def print_config(self):
        print("=== betdesk configuration ===")
        print(f"Environment: {self.ENV} ({'production' if self.is_production else 'local'})")
        print(f"Env files: {', '.join(LOADED_ENV_FILES) or 'none'}")
        print(f"Listening on: {self.HOST}:{self.PORT}")
        print(f"Database: {self.masked_database_url()}")
        print(f"Redis: {self.REDIS_URL or 'disabled (bet limiter fails open)'}")
        print(f"Uploads: {self.UPLOAD_DIR} (max {self.MAX_UPLOAD_BYTES // 1024} KB)")
        print(f"Coin flip multiplier: {self.COIN_FLIP_MULTIPLIER}")
        print(f"Risk thresholds (paise): high > {self.RISK_HIGH_THRESHOLD}, medium > {self.RISK_MEDIUM_THRESHOLD}")
        print(f"Bets per minute: {self.BET_RATE_LIMIT_PER_MINUTE}")


settings = Settings()
