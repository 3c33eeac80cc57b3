"""
Forklift Parts Store Settings

Environment-driven configuration, one ``BaseSettings`` class per subsystem.
Values come from the process environment or a ``.env`` file.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection and pool"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=5432, description="Server port")
    db: str = Field(default="partshop", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="partshop", description="Login role")
    password: SecretStr = Field(default="partshop", description="Login password")
    url: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full SQLAlchemy async URL; wins over the host/port fields",
    )
    pool_size: int = Field(default=10, ge=1, description="Persistent pooled connections per process")
    max_overflow: int = Field(default=5, ge=0, description="Extra connections allowed under burst load")
    pool_timeout: int = Field(default=5, ge=1, description="Seconds to wait for a free connection")
    echo: bool = Field(default=False, description="Log every SQL statement")

    @property
    def async_url(self) -> str:
        if self.url:
            return self.url
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis backing the product lookup cache"""

    model_config = SettingsConfigDict(env_prefix="REDIS_", populate_by_name=True)

    enabled: bool = Field(default=True, description="Turn the product cache on or off")
    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=6379, description="Server port")
    password: Optional[SecretStr] = Field(default=None, description="AUTH password")
    db: int = Field(default=0, description="Logical database index")
    max_connections: int = Field(default=50, description="Client pool size")
    socket_timeout: int = Field(default=2, description="Per-command timeout in seconds")
    decode_responses: bool = Field(default=True, description="Return str instead of bytes")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Full URL; wins over host/port")

    def get_url(self) -> str:
        if self.url:
            return self.url
        auth = f":{self.password.get_secret_value()}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


class CommerceSettings(BaseSettings):
    """Cart and order engine behaviour"""

    model_config = SettingsConfigDict(env_prefix="COMMERCE_")

    currency: str = Field(default="AZN", min_length=3, max_length=3, description="Currency stamped on new orders")
    product_cache_ttl: int = Field(default=300, ge=1, description="Product lookup cache TTL in seconds")
    transient_retry_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Pause before the single retry of a transient database failure",
    )
    enforce_status_transitions: bool = Field(
        default=True,
        description="Reject backward or post-terminal order status changes",
    )
    default_page_size: int = Field(default=20, ge=1, le=100, description="Order listing page size")


class SecuritySettings(BaseSettings):
    """Cross-origin access for the storefront frontend"""

    model_config = SettingsConfigDict(populate_by_name=True)

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
        description="Origins allowed to call the API (JSON list)",
    )


class MonitoringSettings(BaseSettings):
    """Logging output"""

    model_config = SettingsConfigDict(populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")


class Settings(BaseSettings):
    """
    Application settings.

    Subsystem sections read their own prefixed variables; the fields here map
    to unprefixed ones (``APP_ENV``, ``API_PORT``...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="forklift-parts-store", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    version: str = Field(default="1.0.0", alias="APP_VERSION")

    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_workers: int = Field(default=4, alias="API_WORKERS")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    commerce: CommerceSettings = Field(default_factory=CommerceSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = ("development", "staging", "production", "testing")
        if v.lower() not in allowed:
            raise ValueError(f"APP_ENV must be one of {', '.join(allowed)}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Development creates tables on startup and exposes /docs"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
