"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./parking.db"

    # Lot
    total_capacity: Optional[int] = 10
    default_rate_per_hour: float = 5.0
    strict_capacity: bool = False  # reject exits that would overflow the counter

    log_level: str = "INFO"

    # Gate barrier (MQTT); disabled while mqtt_host is unset
    mqtt_host: Optional[str] = None
    mqtt_port: int = 1883
    mqtt_tls_port: int = 8883
    mqtt_tls_enabled: bool = False
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_entry_topic: str = "parking/gate/entry"
    mqtt_exit_topic: str = "parking/gate/exit"
    mqtt_ca_cert: str = os.path.join(BASE_DIR, "mqtt", "iot_mqtt_ca.crt")
    mqtt_client_cert: str = os.path.join(BASE_DIR, "mqtt", "iot_mqtt_client.crt")
    mqtt_client_key: str = os.path.join(BASE_DIR, "mqtt", "iot_mqtt_client.key")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
