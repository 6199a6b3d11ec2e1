from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ProviderId


class MestaSettings(BaseModel):
    base_url: str = "https://api.stg.mesta.xyz/v1"
    api_key: str = ""
    merchant_id: str = ""
    webhook_secret: str = ""
    timeout_seconds: float = 30
    retry_attempts: int = 3
    enabled: bool = True


class BorderlessSettings(BaseModel):
    base_url: str = "https://api.sandbox.borderless.xyz/v1"
    api_secret: str = ""
    client_id: str = ""
    webhook_secret: str = ""
    timeout_seconds: float = 30
    retry_attempts: int = 3
    enabled: bool = True


class AuthSettings(BaseModel):
    enabled: bool = False
    header_name: str = "X-API-Key"
    api_keys: List[str] = Field(default_factory=list)
    excluded_paths: List[str] = Field(
        default_factory=lambda: ["/health", "/docs", "/redoc", "/openapi.json", "/api/v1/webhooks"]
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAYOUTS_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_provider: ProviderId = ProviderId.MESTA
    enable_failover: bool = True
    quote_validity_minutes: int = 5
    circuit_breaker_failures: int = 5
    circuit_breaker_seconds: float = 30
    health_check_timeout_seconds: float = 10
    log_level: str = "INFO"

    mesta: MestaSettings = Field(default_factory=MestaSettings)
    borderless: BorderlessSettings = Field(default_factory=BorderlessSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)


settings = Settings()
