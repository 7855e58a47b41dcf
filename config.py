import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "").strip()
    database_name: str = os.getenv("DATABASE_NAME", "").strip()

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    # default 24h
    jwt_expire_minutes: int = _int_env("JWT_EXPIRE_MIN", 1440)

    cors_origins: List[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_json: bool = os.getenv("LOG_JSON", "0").strip().lower() in {"1", "true", "yes"}

    port: int = _int_env("PORT", 8000)


settings = Settings()
