import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root (parent of app/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)

logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Dev: SQLite (zero config), Prod: PostgreSQL
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    if ENVIRONMENT == "prod":
        raise RuntimeError("DATABASE_URL must be set in production")
    DATABASE_URL = f"sqlite:///{Path(__file__).parent.parent / 'nobull_dev.db'}"

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    if ENVIRONMENT == "prod":
        raise RuntimeError("SECRET_KEY is not set")
    SECRET_KEY = "change-this-secret-in-production"
    logger.warning("SECRET_KEY is not set, using the development fallback")

ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 7 * 24 * 60))
REMEMBER_TOKEN_EXPIRE_MINUTES = int(os.getenv("REMEMBER_TOKEN_EXPIRE_MINUTES", 30 * 24 * 60))
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "auth_token")

SHORT_LINK_BASE_URL = os.getenv("SHORT_LINK_BASE_URL", "https://nobull.fit").rstrip("/")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
