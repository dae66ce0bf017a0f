"""
Environment configuration for the relay.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


DEBUG = _env_bool("DEBUG", "false")
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

# Retention windows (seconds)
MESSAGE_TTL_SECONDS = int(os.getenv("MESSAGE_TTL_SECONDS", 24 * 60 * 60))
RECEIPT_VISIBILITY_SECONDS = int(os.getenv("RECEIPT_VISIBILITY_SECONDS", 24 * 60 * 60))
RECEIPT_RETENTION_SECONDS = int(os.getenv("RECEIPT_RETENTION_SECONDS", 7 * 24 * 60 * 60))
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", 60))

# Input limits
MAX_PAYLOAD_BYTES = int(os.getenv("MAX_PAYLOAD_BYTES", 1024 * 1024))  # 1MB
MAX_IDENTIFIER_LENGTH = int(os.getenv("MAX_IDENTIFIER_LENGTH", 128))

# Rate limits (slowapi syntax)
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", "true")
ROOM_CREATE_RATE_LIMIT = os.getenv("ROOM_CREATE_RATE_LIMIT", "30/minute")
SEND_RATE_LIMIT = os.getenv("SEND_RATE_LIMIT", "120/minute")
KEY_WRITE_RATE_LIMIT = os.getenv("KEY_WRITE_RATE_LIMIT", "30/minute")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]
