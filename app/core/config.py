import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base directory of the project (parent of 'app')
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Database Directory
DB_DIR = BASE_DIR / "db"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# HTTP surface
ENABLE_DOCS = os.getenv("ENABLE_DOCS", "true").lower() == "true"
ENABLE_HSTS = os.getenv("ENABLE_HSTS", "false").lower() == "true"
TRUSTED_HOSTS = [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]

# Settings keys with special meaning
CURRENT_SEMESTER_KEY = "current_semester"


def get_cors_allow_origins() -> list[str]:
    """Comma separated CORS_ALLOW_ORIGINS, defaulting to any origin."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# Ensure DB directory exists
os.makedirs(DB_DIR, exist_ok=True)
