from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    paytr_merchant_key: str | None = None
    paytr_merchant_salt: str | None = None
    paytr_require_valid_hash: bool = False
    paytr_gateway_hosts: str = "paytr.com"

    site_base_url: str = Field(
        default="https://mapsyorum.com.tr",
        validation_alias=AliasChoices("site_base_url", "next_public_base_url"),
    )
    payment_success_path: str = "/payment/success"
    payment_failure_path: str = "/payment/failure"

    order_api_base_url: str | None = None
    order_api_path: str = "/api/orders"
    order_api_timeout_seconds: float = 5.0
    payment_method: str = "paytr"

    correlation_ttl_seconds: int = 600
    correlation_window_seconds: int = 300
    redirect_wait_seconds: float = 1.5

    monitoring_webhook_url: str | None = None

    port: int = 3000
    env: str = "dev"
    log_level: str = "info"

    @field_validator("paytr_merchant_salt", mode="before")
    @classmethod
    def _strip_salt_prefix(cls, value: object) -> object:
        # Salts copied from the merchant panel sometimes keep the "=" of KEY=VALUE.
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("="):
                value = value[1:]
        return value

    @property
    def has_paytr_credentials(self) -> bool:
        return bool(self.paytr_merchant_key and self.paytr_merchant_salt)

    @property
    def order_api_url(self) -> str:
        base = (self.order_api_base_url or self.site_base_url).rstrip("/")
        return f"{base}/{self.order_api_path.lstrip('/')}"

    @property
    def gateway_hosts(self) -> set[str]:
        return {
            part.strip().lower()
            for part in self.paytr_gateway_hosts.split(",")
            if part.strip()
        }

    @property
    def redirect_wait_bound_seconds(self) -> float:
        return min(max(self.redirect_wait_seconds, 0.0), 5.0)


settings = Settings()
