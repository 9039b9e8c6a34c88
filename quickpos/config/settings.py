"""
Configuration settings for QuickPos
Handles environment variables and provider credentials
"""
import json
from typing import Any, Dict

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "quickpos"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Outbound provider calls
    HTTP_TIMEOUT_SECONDS: float = 15.0
    SANDBOX: bool = True

    # Processed-callback ledger
    DATABASE_URL: str = "sqlite:///./quickpos.db"

    # Provider credentials, e.g.
    # QUICKPOS_PROVIDERS='{"razorpay": {"key_id": "...", "key_secret": "..."}}'
    PROVIDERS: Dict[str, Dict[str, Any]] = {}

    @field_validator("PROVIDERS", mode="before")
    @classmethod
    def parse_providers(cls, v):
        if isinstance(v, str):
            v = json.loads(v) if v.strip() else {}
        return {str(name).lower(): dict(conf or {}) for name, conf in (v or {}).items()}

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper()

    def provider_config(self, name: str) -> Dict[str, Any]:
        """Credentials for one provider with global defaults filled in."""
        conf = {"sandbox": self.SANDBOX, "timeout": self.HTTP_TIMEOUT_SECONDS}
        conf.update(self.PROVIDERS.get(name.lower(), {}))
        return conf

    class Config:
        env_prefix = "QUICKPOS_"
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


# Validation
def validate_settings(s: Settings = settings):
    """Validate critical settings"""
    issues = []

    if s.HTTP_TIMEOUT_SECONDS <= 0:
        issues.append("HTTP_TIMEOUT_SECONDS must be positive")

    if s.ENVIRONMENT == "production":
        if s.SANDBOX:
            issues.append("SANDBOX must be disabled in production")
        for name, conf in s.PROVIDERS.items():
            if conf.get("sandbox"):
                issues.append(f"provider '{name}' is pinned to sandbox in production")

    if issues:
        raise ValueError(f"Configuration issues: {', '.join(issues)}")
