"""
Configuration settings for LoteTrace
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    # PostgreSQL in production; sqlite URLs are accepted for local runs
    DATABASE_URL: str = "postgresql://postgres@localhost:5432/lotetrace"

    # Application
    APP_NAME: str = "LoteTrace"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Public traceability links (QR codes point here)
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    SNAPSHOT_VERSION: str = "1.0"

    # MQTT broker ingestion
    MQTT_ENABLED: bool = False
    MQTT_DEFAULT_HOST: Optional[str] = "eu1.cloud.thethings.network"
    MQTT_DEFAULT_PORT: int = 8883
    MQTT_KEEPALIVE: int = 60
    MQTT_RECONCILE_INTERVAL_SECONDS: int = 60
    MQTT_RECONNECT_MIN_DELAY: int = 1
    MQTT_RECONNECT_MAX_DELAY: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
