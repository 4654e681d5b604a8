"""
Central configuration module for Content Vault
Reads and validates environment variables with strict checks for production
"""
import os
import sys
from decimal import Decimal
from typing import Optional, List

from dotenv import load_dotenv

# Only load .env in development
if os.getenv("ENV", "dev").lower() == "dev":
    load_dotenv()


class Config:
    """Central configuration class with environment variable validation"""

    # Environment
    ENV: str = os.getenv("ENV", "dev").lower()

    # Required for all environments
    SECRET_KEY: str = os.getenv("SECRET_KEY", "")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    PORT: int = int(os.getenv("PORT", "8000"))
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")

    # CORS
    CORS_ORIGINS: List[str] = []

    # Database pool
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "900"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))

    # Payment processor - Stripe
    STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_TEST_SECRET_KEY: Optional[str] = os.getenv("STRIPE_TEST_SECRET_KEY")
    STRIPE_TEST_WEBHOOK_SECRET: Optional[str] = os.getenv("STRIPE_TEST_WEBHOOK_SECRET")

    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "usd").lower()
    # Seconds before a processor call is abandoned and the payment left pending
    PAYMENT_PROCESSOR_TIMEOUT: float = float(os.getenv("PAYMENT_PROCESSOR_TIMEOUT", "10"))

    # Entitlement defaults, overridable per project
    DEFAULT_FREE_VIDEO_LIMIT: int = int(os.getenv("DEFAULT_FREE_VIDEO_LIMIT", "3"))
    DEFAULT_FREE_HEADSHOT_LIMIT: int = int(os.getenv("DEFAULT_FREE_HEADSHOT_LIMIT", "0"))
    DEFAULT_ITEM_PRICE: Decimal = Decimal(os.getenv("DEFAULT_ITEM_PRICE", "25.00"))
    DEFAULT_ADDITIONAL_3_VIDEOS_PRICE: Decimal = Decimal(
        os.getenv("DEFAULT_ADDITIONAL_3_VIDEOS_PRICE", "199.00")
    )
    DEFAULT_ALL_CONTENT_PRICE: Decimal = Decimal(os.getenv("DEFAULT_ALL_CONTENT_PRICE", "499.00"))

    # Build version (set during build/deploy)
    BUILD_VERSION: str = os.getenv("BUILD_VERSION", "dev")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def __init__(self):
        """Initialize configuration and validate required variables"""
        self._load_cors_origins()
        self._validate()

    def _load_cors_origins(self):
        """Load CORS origins from environment variable"""
        default_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ]

        cors_env = os.getenv("CORS_ORIGINS", "")
        if cors_env:
            env_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
            self.CORS_ORIGINS = default_origins + env_origins
        else:
            self.CORS_ORIGINS = default_origins

    def _validate(self):
        """Validate required configuration based on environment"""
        errors = []

        if self.ENV not in ["dev", "test", "staging", "prod"]:
            errors.append(f"Invalid ENV value: {self.ENV}. Must be 'dev', 'test', 'staging', or 'prod'")

        # SECRET_KEY is required for all environments
        if not self.SECRET_KEY:
            errors.append("SECRET_KEY is required but not set")
        elif len(self.SECRET_KEY) < 32:
            errors.append(f"SECRET_KEY must be at least 32 characters (current: {len(self.SECRET_KEY)})")

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required but not set")
        elif self.ENV in ["staging", "prod"] and not self.DATABASE_URL.startswith("postgresql"):
            errors.append("DATABASE_URL must be a PostgreSQL connection string in staging/production")

        if self.DEFAULT_FREE_VIDEO_LIMIT < 0 or self.DEFAULT_FREE_HEADSHOT_LIMIT < 0:
            errors.append("Free selection limits cannot be negative")

        if self.PAYMENT_PROCESSOR_TIMEOUT <= 0:
            errors.append("PAYMENT_PROCESSOR_TIMEOUT must be positive")

        # Webhook secret required in staging/prod when Stripe is configured
        if self.ENV in ["staging", "prod"]:
            if self.STRIPE_SECRET_KEY or self.STRIPE_TEST_SECRET_KEY:
                stripe_webhook = self.STRIPE_WEBHOOK_SECRET if self.ENV == "prod" else self.STRIPE_TEST_WEBHOOK_SECRET
                if not stripe_webhook:
                    errors.append(
                        f"STRIPE_{'TEST_' if self.ENV == 'staging' else ''}WEBHOOK_SECRET is required "
                        f"when Stripe is configured in {self.ENV}"
                    )
            if not self.API_BASE_URL.startswith("https://"):
                errors.append("API_BASE_URL must use HTTPS in staging/production")

        # Fail fast in staging/prod
        if errors and self.ENV in ["staging", "prod"]:
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION VALIDATION FAILED", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ❌ {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            sys.exit(1)

        # Warn in dev
        if errors and self.ENV == "dev":
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION WARNINGS (dev mode - continuing)", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ⚠️  {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode"""
        return self.ENV == "dev"

    @property
    def is_test(self) -> bool:
        return self.ENV == "test"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode"""
        return self.ENV == "prod"

    def stripe_secret_key(self) -> Optional[str]:
        """Live key in prod, test key everywhere else"""
        if self.is_prod:
            return self.STRIPE_SECRET_KEY
        return self.STRIPE_TEST_SECRET_KEY or self.STRIPE_SECRET_KEY

    def stripe_webhook_secret(self) -> Optional[str]:
        if self.is_prod:
            return self.STRIPE_WEBHOOK_SECRET
        return self.STRIPE_TEST_WEBHOOK_SECRET or self.STRIPE_WEBHOOK_SECRET


# Create global config instance
config = Config()
