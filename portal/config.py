# portal/config.py
import os
import pathlib

from dotenv import load_dotenv, find_dotenv

ROOT = pathlib.Path(__file__).resolve().parent.parent

env_path = ROOT / ".env"
if not env_path.exists():
    env_path = find_dotenv()
load_dotenv(env_path)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + str(ROOT / "portal.db"))
SQL_ECHO = _flag("SQL_ECHO")

SESSION_SECRET = os.getenv("SESSION_SECRET", "replace_with_a_strong_secret_here")
JWT_SECRET = os.getenv("JWT_SECRET", SESSION_SECRET)
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
SESSION_IDLE_MINUTES = int(os.getenv("SESSION_IDLE_MINUTES", "120"))
PASSWORD_RESET_EXPIRE_MINUTES = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "30"))

STORAGE_ROOT = pathlib.Path(os.getenv("STORAGE_ROOT", str(ROOT / "storage")))
SIGNED_URL_TTL_SECONDS = int(os.getenv("SIGNED_URL_TTL_SECONDS", "60"))

# Demo escape hatch: a fixed credential pair that yields an admin context
# without a real session. Off unless explicitly enabled.
DEV_BYPASS_ENABLED = _flag("DEV_BYPASS_ENABLED")
DEV_BYPASS_EMAIL = os.getenv("DEV_BYPASS_EMAIL", "admin@gmail.com")
DEV_BYPASS_PASSWORD = os.getenv("DEV_BYPASS_PASSWORD", "Admin@12")

PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "http://localhost:8000")
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def dev_bypass_credentials():
    """Return the (email, password) bypass pair, or None when disabled."""
    if not DEV_BYPASS_ENABLED:
        return None
    return DEV_BYPASS_EMAIL.strip().lower(), DEV_BYPASS_PASSWORD
