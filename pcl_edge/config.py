from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


CORS_POLICIES = ("wildcard", "mirrored")


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # ==============================================
    # Payment processor (Server-Side Only!)
    # ==============================================
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_api_base: str = Field(default="https://api.stripe.com/v1", alias="STRIPE_API_BASE")

    # Redirect bases the hosted checkout page returns to
    success_url_base: str = Field(default="", alias="SUCCESS_URL_BASE")
    cancel_url_base: str = Field(default="", alias="CANCEL_URL_BASE")

    checkout_currency: str = Field(default="usd", alias="CHECKOUT_CURRENCY")
    idempotency_namespace: str = Field(default="pcl", alias="IDEMPOTENCY_NAMESPACE")
    payment_timeout_seconds: float = Field(default=15, alias="PAYMENT_TIMEOUT_SECONDS")

    # ==============================================
    # Script backends (Endpoint Identities)
    # ==============================================
    # A = booking backend, B = lookup backend, C = manage backend
    script_url_a: str = Field(default="", alias="GOOGLE_SCRIPT_URL_A")
    script_url_b: str = Field(default="", alias="GOOGLE_SCRIPT_URL_B")
    script_url_c: str = Field(default="", alias="GOOGLE_SCRIPT_URL_C")

    # Process-wide fallback for operations outside every group
    script_url_fallback: str = Field(default="", alias="GOOGLE_SCRIPT_URL")

    # Operation groups (comma-separated)
    booking_operations: str = Field(
        default="ping,config,availability,book,checkout,confirm",
        alias="BOOKING_OPERATIONS"
    )
    lookup_operations: str = Field(default="", alias="LOOKUP_OPERATIONS")
    manage_operations: str = Field(
        default="manage_lookup,manage_update_address,manage_catalog,extras_checkout,extras_confirm",
        alias="MANAGE_OPERATIONS"
    )

    # Per-group upstream timeouts (seconds, wall clock)
    booking_timeout_seconds: float = Field(default=12, alias="BOOKING_TIMEOUT_SECONDS")
    lookup_timeout_seconds: float = Field(default=12, alias="LOOKUP_TIMEOUT_SECONDS")
    manage_timeout_seconds: float = Field(default=15, alias="MANAGE_TIMEOUT_SECONDS")
    fallback_timeout_seconds: float = Field(default=12, alias="FALLBACK_TIMEOUT_SECONDS")

    # Per-group CORS policy: "wildcard" (legacy callers) or "mirrored" (credentials)
    booking_cors_policy: str = Field(default="wildcard", alias="BOOKING_CORS_POLICY")
    lookup_cors_policy: str = Field(default="mirrored", alias="LOOKUP_CORS_POLICY")
    manage_cors_policy: str = Field(default="mirrored", alias="MANAGE_CORS_POLICY")
    fallback_cors_policy: str = Field(default="wildcard", alias="FALLBACK_CORS_POLICY")

    # ==============================================
    # Relays
    # ==============================================
    # Chat automation relay for booking_created events
    slack_automations_url: str = Field(default="", alias="SLACK_AUTOMATIONS_URL")
    inbound_secret: str = Field(default="", alias="INBOUND_SECRET")
    notify_timeout_seconds: float = Field(default=10, alias="NOTIFY_TIMEOUT_SECONDS")

    # Inbound SMS webhook target
    apps_script_webapp_url: str = Field(default="", alias="APPS_SCRIPT_WEBAPP_URL")
    sms_timeout_seconds: float = Field(default=12, alias="SMS_TIMEOUT_SECONDS")

    # Rate limits (slowapi syntax)
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    checkout_rate_limit: str = Field(default="30/minute", alias="CHECKOUT_RATE_LIMIT")
    proxy_rate_limit: str = Field(default="120/minute", alias="PROXY_RATE_LIMIT")
    notify_rate_limit: str = Field(default="30/minute", alias="NOTIFY_RATE_LIMIT")

    @field_validator(
        'booking_cors_policy',
        'lookup_cors_policy',
        'manage_cors_policy',
        'fallback_cors_policy'
    )
    @classmethod
    def validate_cors_policy(cls, v: str) -> str:
        """CORS policy must be one of the known policy names"""
        v = (v or "").strip().lower()
        if v not in CORS_POLICIES:
            raise ValueError(f"CORS policy must be one of {', '.join(CORS_POLICIES)}")
        return v

    @field_validator(
        'script_url_a',
        'script_url_b',
        'script_url_c',
        'script_url_fallback',
        'success_url_base',
        'cancel_url_base',
        'slack_automations_url',
        'apps_script_webapp_url'
    )
    @classmethod
    def strip_url(cls, v: str) -> str:
        # Values pasted into dashboards often carry quotes or whitespace
        return (v or "").strip().strip("'").strip('"')

    @staticmethod
    def _split_operations(raw: str) -> List[str]:
        """Parse a comma-separated operation list, keeping order, dropping blanks and duplicates"""
        seen = set()
        operations = []
        for name in (raw or "").split(","):
            name = name.strip()
            if name and name not in seen:
                seen.add(name)
                operations.append(name)
        return operations

    @property
    def booking_operation_list(self) -> List[str]:
        return self._split_operations(self.booking_operations)

    @property
    def lookup_operation_list(self) -> List[str]:
        return self._split_operations(self.lookup_operations)

    @property
    def manage_operation_list(self) -> List[str]:
        return self._split_operations(self.manage_operations)

    @property
    def has_payment_config(self) -> bool:
        """Check if processor credential and both redirect bases are present"""
        return bool(
            self.stripe_secret_key and
            self.success_url_base and
            self.cancel_url_base
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
