"""Runtime configuration loaded from the environment (and a local .env)."""

import os
from dotenv import load_dotenv

load_dotenv()

API_KEY: str = os.getenv("SENTINEL_API_KEY", "sentinel-dev-key")

# "latest" scores the most recent raw sample per signal, "mean" scores the
# estimator's own smoothed baseline.
SCORE_MODE: str = os.getenv("SENTINEL_SCORE_MODE", "latest").strip().lower()

LOG_LEVEL: str = os.getenv("SENTINEL_LOG_LEVEL", "INFO").upper()

EVENT_LOG_MAX: int = int(os.getenv("SENTINEL_EVENT_LOG_MAX", "5000"))

# Sessions older than this are eligible for cleanup.
SESSION_EXPIRY_SECONDS: int = int(os.getenv("SENTINEL_SESSION_EXPIRY_SECONDS", "3600"))

# Empty disables high-risk webhooks.
ALERT_URL: str = os.getenv("SENTINEL_ALERT_URL", "")

PORT: int = int(os.getenv("PORT", "8081"))
