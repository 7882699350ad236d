# dwreport/core/config.py
import logging
from typing import List

from pydantic_settings import BaseSettings; from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dwreport.db"

    # Hosted identity provider (GoTrue compatible)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    SESSION_COOKIE_NAME: str = "sb-access-token"
    # upper bound on how long a resolved session is reused without re-checking the token
    SESSION_CACHE_SECONDS: int = 60

    DISPLAY_TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    LOGIN_PAGE: str = "/login"
    DEFAULT_PAGE: str = "/report"
    MIN_PASSWORD_LENGTH: int = 6
    DEPARTMENTS: List[str] = [
        "HR", "Accounts", "Engineering", "Production", "Sales", "Marketing", "Export", "Purchase",
    ]


settings = Settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
