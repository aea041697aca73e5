import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / ".env")

# -------------------- Database -------------------- #
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "behavior_tracker")

# -------------------- Auth -------------------- #
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

# -------------------- App -------------------- #
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8000))

# Single $push per incident; "0" restores read-modify-write on the incident list
ATOMIC_INCIDENT_APPEND = os.getenv("ATOMIC_INCIDENT_APPEND", "1").lower() in {"1", "true", "yes"}

# All staff share one calendar day regardless of device locale. Not configurable.
DAY_KEY_TIMEZONE = "America/Detroit"
