import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# External booking backend. Every REST call goes to BACKEND_API_URL.
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")
BACKEND_API_URL = f"{BACKEND_URL}/api"
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30"))

# Frontend base URL (login links, OAuth start links)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")

# Public booking pages are served from here: {PUBLIC_BOOKING_BASE_URL}/{slug}
PUBLIC_BOOKING_BASE_URL = os.getenv(
    "PUBLIC_BOOKING_BASE_URL", "https://app.avellabooking.com/book"
).rstrip("/")

DEFAULT_TENANT_TIMEZONE = os.getenv("DEFAULT_TENANT_TIMEZONE", "America/New_York")

# Server-side sessions (tokens never reach the browser)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "salon_session")
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(7 * 24 * 3600)))
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"

# Master-admin integration health auto refresh
HEALTH_POLL_INTERVAL_SECONDS = float(os.getenv("HEALTH_POLL_INTERVAL_SECONDS", "30"))

# Rate limits for unauthenticated auth endpoints
LOGIN_RATE_LIMIT = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
LOGIN_RATE_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "300"))
PASSWORD_RESET_RATE_LIMIT = int(os.getenv("PASSWORD_RESET_RATE_LIMIT", "5"))
PASSWORD_RESET_RATE_WINDOW_SECONDS = int(os.getenv("PASSWORD_RESET_RATE_WINDOW_SECONDS", "3600"))
