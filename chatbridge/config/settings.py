import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from os import getenv
from typing import Literal

logger = logging.getLogger(__name__)

_INSECURE_DEFAULTS = {"change-me", "change-me-too", ""}


@dataclass
class Settings:
    app_name: str = "Chatbridge"
    app_env: Literal["dev", "test", "prod"] = "dev"
    app_version: str = "0.1.0"
    app_public_url: str = "http://localhost:3000"

    database_url: str = "sqlite:///./chatbridge.db"
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    allow_default_user: bool = False

    rate_limit_per_minute: int = 120
    integration_test_rate_limit: int = 10

    openrouter_api_key: str | None = None
    openai_api_key: str | None = None
    default_model: str = "meta-llama/llama-3.1-8b-instruct"
    fallback_mode: bool = False
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 2

    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None

    auth0_domain: str | None = None

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    def _as_bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}

    app_env = getenv("APP_ENV", "dev")

    jwt_secret = getenv("JWT_SECRET", "")

    # In production, refuse to start with an insecure/missing secret
    if app_env == "prod":
        if jwt_secret in _INSECURE_DEFAULTS:
            raise RuntimeError(
                "JWT_SECRET is not set or uses an insecure default. "
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
    else:
        if jwt_secret in _INSECURE_DEFAULTS:
            jwt_secret = secrets.token_hex(32)
            logger.warning("JWT_SECRET not set, using auto-generated value (not suitable for production)")

    return Settings(
        app_name=getenv("APP_NAME", "Chatbridge"),
        app_env=app_env,
        app_version=getenv("APP_VERSION", "0.1.0"),
        app_public_url=getenv("APP_PUBLIC_URL", "http://localhost:3000").rstrip("/"),
        database_url=getenv("DATABASE_URL", "sqlite:///./chatbridge.db"),
        jwt_secret=jwt_secret,
        jwt_algorithm=getenv("JWT_ALGORITHM", "HS256"),
        allow_default_user=_as_bool(getenv("ALLOW_DEFAULT_USER"), False),
        rate_limit_per_minute=int(getenv("RATE_LIMIT_PER_MINUTE", "120")),
        integration_test_rate_limit=int(getenv("INTEGRATION_TEST_RATE_LIMIT", "10")),
        openrouter_api_key=getenv("OPENROUTER_API_KEY") or None,
        openai_api_key=getenv("OPENAI_API_KEY") or None,
        default_model=getenv("DEFAULT_MODEL", "meta-llama/llama-3.1-8b-instruct"),
        fallback_mode=_as_bool(getenv("FALLBACK_MODE"), False),
        llm_timeout_seconds=float(getenv("LLM_TIMEOUT_SECONDS", "30")),
        llm_max_retries=int(getenv("LLM_MAX_RETRIES", "2")),
        stripe_secret_key=getenv("STRIPE_SECRET_KEY") or None,
        stripe_webhook_secret=getenv("STRIPE_WEBHOOK_SECRET") or None,
        auth0_domain=getenv("AUTH0_DOMAIN") or None,
    )
