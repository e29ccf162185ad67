import os
import logging
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

# Mandatory environment variables for production
REQUIRED_PRODUCTION_ENV_VARS = [
    "SECRET_KEY",
    "DATABASE_URL",
]

# Billing overrides that must parse as positive numbers when present
NUMERIC_BILLING_ENV_VARS = [
    "BILLING_DEFAULT_GST_RATE",
    "BILLING_DEFAULT_TDS_RATE",
    "BILLING_TDS_AUTO_THRESHOLD",
    "BILLING_INVOICE_DUE_DAYS",
    "BILLING_RECURRING_DUE_DAYS",
    "BILLING_USD_TO_INR_RATE",
]


def validate_env():
    """
    Validate critical environment variables for Django settings.
    Runs once per process; subsequent calls are idempotent.
    """
    is_production = os.getenv("PRODUCTION", "false").lower() == "true"

    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        if is_production:
            raise ImproperlyConfigured("CRITICAL: SECRET_KEY is required in production.")
        else:
            logger.warning("SECRET_KEY not set, using insecure default for development.")

    if is_production:
        missing = [var for var in REQUIRED_PRODUCTION_ENV_VARS if not os.getenv(var)]
        if missing:
            error_msg = f"CRITICAL: Missing required environment variables in production: {', '.join(missing)}"
            logger.critical(error_msg)
            raise ImproperlyConfigured(error_msg)

        if secret_key and (secret_key.startswith("django-insecure") or len(secret_key) < 50):
            error_msg = "CRITICAL: SECRET_KEY must be a long, secure string in production"
            logger.critical(error_msg)
            raise ImproperlyConfigured(error_msg)

    for var in NUMERIC_BILLING_ENV_VARS:
        raw = os.getenv(var)
        if raw is None:
            continue
        try:
            value = float(raw)
        except ValueError:
            raise ImproperlyConfigured(f"{var} must be numeric, got {raw!r}")
        if value <= 0:
            raise ImproperlyConfigured(f"{var} must be greater than zero")

    logger.info("Environment validation passed successfully")
