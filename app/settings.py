import os
from decimal import Decimal

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
catalog_ms_url = os.environ.get("CATALOG_MS_URL", "http://localhost:8001")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
GENERATE_SCHEMAS = os.environ.get("GENERATE_SCHEMAS", "true").lower() == "true"

DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "IDR")
AVAILABILITY_CHECK_ATTEMPTS = int(os.environ.get("AVAILABILITY_CHECK_ATTEMPTS", "3"))
MIN_PAYMENT_AMOUNT = Decimal(os.environ.get("MIN_PAYMENT_AMOUNT", "10000"))
PAYMENT_TOLERANCE = Decimal(os.environ.get("PAYMENT_TOLERANCE", "100"))

TORTOISE_ORM = {
    "connections": {"default": db_url},
    "apps": {"models": {"models": ["app.models"], "default_connection": "default"}},
    "use_tz": True,
    "timezone": "UTC",
}
