"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional


class OmsinConfig(BaseSettings):
    """Omsin ledger configuration"""
    
    # Storage configuration
    storage_backend: str = "sqlite"  # memory, sqlite or json
    database_path: str = "omsin.db"  # SQLite file, or directory for the json backend
    seed_demo_data: bool = True  # Seed the three demo accounts on first run
    
    # Business rules configuration
    transfer_limit: str = "10000.00"  # Per-transfer ceiling
    currency: str = "USD"
    recent_transactions_limit: int = 5
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    cors_origins: str = "*"  # Comma separated
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    class Config:
        env_prefix = "OMSIN_"
        env_file = ".env"
        case_sensitive = False
    
    @property
    def transfer_limit_amount(self) -> Decimal:
        """Transfer ceiling as a Decimal"""
        return Decimal(self.transfer_limit)
    
    @property
    def cors_origin_list(self):
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global configuration instance
config = OmsinConfig()


def get_config() -> OmsinConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> OmsinConfig:
    """Reload configuration from environment"""
    global config
    config = OmsinConfig()
    return config
