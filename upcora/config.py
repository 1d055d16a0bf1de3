"""
Runtime configuration read from environment variables
"""
import os

# Prefer DATABASE_URL (e.g., Postgres on Render). Fallback to local SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./upcora.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")

CORS_ORIGINS = [o.strip() for o in os.getenv("UPCORA_CORS_ORIGINS", "*").split(",") if o.strip()]

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
MIN_TEXT_LENGTH = 100

# Seconds slept by the template generator to mimic model latency
GENERATION_DELAY_SECONDS = float(os.getenv("UPCORA_GENERATION_DELAY", "3"))
FETCH_TIMEOUT_SECONDS = float(os.getenv("UPCORA_FETCH_TIMEOUT", "15"))

ADMIN_STATS_CACHE_SECONDS = int(os.getenv("UPCORA_ADMIN_STATS_TTL", "30"))
