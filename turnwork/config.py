import os

DB_PATH = os.environ.get("TURNWORK_DB_PATH", "turnwork.db")
LOG_LEVEL = os.environ.get("TURNWORK_LOG_LEVEL", "INFO").upper()
CAL_NAME = os.environ.get("TURNWORK_CAL_NAME", "TurnWork")

CORS_ALLOW_ORIGINS = os.environ.get("CORS_ALLOW_ORIGINS", "")
CORS_ALLOW_ORIGIN_REGEX = os.environ.get(
    "CORS_ALLOW_ORIGIN_REGEX", r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
)


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in CORS_ALLOW_ORIGINS.split(",") if origin.strip()]
