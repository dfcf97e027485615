# paperink/core/config.py
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from openai import OpenAI

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / "paperink/.env", override=True)

def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")

def env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes"}

# ================== AUTH (JWT) ==================
# Tokens are issued by the external auth provider; we only verify them.

AUTH_JWT_SECRET = env("AUTH_JWT_SECRET", "SUPABASE_JWT_SECRET", "JWT_SECRET", default="default_secret_key")
AUTH_JWT_ALGORITHM = os.environ.get("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.environ.get("AUTH_JWT_AUDIENCE") or None

# ================== STRIPE ==================

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "").strip()
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "").strip()
STRIPE_SUBSCRIPTION_PRICE_ID = os.getenv("STRIPE_SUBSCRIPTION_PRICE_ID", "").strip()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

# ================== STORAGE (S3 compatible) ==================

STORAGE_ENDPOINT_URL = os.environ.get("STORAGE_ENDPOINT_URL") or None
STORAGE_ACCESS_KEY_ID = os.environ.get("STORAGE_ACCESS_KEY_ID", "")
STORAGE_SECRET_ACCESS_KEY = os.environ.get("STORAGE_SECRET_ACCESS_KEY", "")
STORAGE_REGION = os.environ.get("STORAGE_REGION", "us-east-1")
HERO_PORTRAIT_BUCKET = os.environ.get("HERO_PORTRAIT_BUCKET", "hero-portraits")
STORY_IMAGE_BUCKET = os.environ.get("STORY_IMAGE_BUCKET", "story-images")
SIGNED_URL_TTL_SECONDS = int(os.environ.get("SIGNED_URL_TTL_SECONDS", str(60 * 60 * 6)))

# ================== REMINDERS ==================

RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
REMINDER_FROM_EMAIL = os.environ.get("REMINDER_FROM_EMAIL", "Paper & Ink <reminders@paperink.app>")
PUBLIC_API_URL = os.environ.get("PUBLIC_API_URL", "http://localhost:8000").rstrip("/")
CRON_SECRET = os.environ.get("CRON_SECRET", "")

# ================== CORS ==================

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# ================== OPENAI ==================

def get_openai_client() -> OpenAI:
    """
    Lazy init: the server starts without a key.
    Only the question and demo story generators require OPENAI_API_KEY.
    """
    key = os.environ.get("OPENAI_API_KEY")
    if not key:
        raise RuntimeError("OPENAI_API_KEY not configured (.env).")
    base_url = os.environ.get("OPENAI_BASE_URL") or None
    return OpenAI(api_key=key, base_url=base_url)

# "4o" is accepted as shorthand for gpt-4o
QUESTIONS_MODEL = env("OPENAI_QUESTIONS_MODEL", "OPENAI_DEFAULT_MODEL", default="gpt-4.1-mini").strip()
if QUESTIONS_MODEL == "4o":
    QUESTIONS_MODEL = "gpt-4o"

STORY_MODEL = env("OPENAI_STORY_MODEL", default=QUESTIONS_MODEL).strip()
if STORY_MODEL == "4o":
    STORY_MODEL = "gpt-4o"

# ================== DATABASE ==================
# SQLite for local development and tests

DATABASE_URL = os.environ.get("DATABASE_URL", "")

def get_database_url() -> str:
    """Get database URL - supports SQLite, PostgreSQL or MySQL."""
    if DATABASE_URL:
        return DATABASE_URL

    mysql_host = os.environ.get("MYSQL_HOST")
    if mysql_host:
        mysql_port = int(os.environ.get("MYSQL_PORT", "3306"))
        mysql_user = os.environ.get("MYSQL_USER", "root")
        mysql_password = os.environ.get("MYSQL_PASSWORD", "")
        mysql_db = os.environ.get("MYSQL_DB", "paperink")
        return f"mysql+aiomysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"

    db_path = ROOT_DIR / "paperink" / "paperink.db"
    return f"sqlite+aiosqlite:///{db_path}"
