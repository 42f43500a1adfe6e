import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
generate_schemas = os.environ.get("DB_GENERATE_SCHEMAS", "true").lower() == "true"

users_ms_url = os.environ.get("USERS_MS_URL", "http://localhost:8000")
properties_ms_url = os.environ.get("PROPERTIES_MS_URL", "http://localhost:8001")
upstream_timeout = float(os.environ.get("UPSTREAM_TIMEOUT", "5.0"))

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# "today" for the past check-in rule is evaluated in this zone
booking_timezone = os.environ.get("BOOKING_TIMEZONE", "UTC")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
