import os
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

# Values already present in the environment win over the .env file
_env_path = find_dotenv(usecwd=True)
if _env_path:
    load_dotenv(_env_path, override=False)


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL")
    # Primary admin email plus an optional comma separated list of extra admins
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_EMAILS: str = os.getenv("ADMIN_EMAILS", "")
    # Returns may only be requested this many (possibly fractional) days after payment
    RETURN_WINDOW_DAYS: float = float(os.getenv("RETURN_WINDOW_DAYS", "7"))
    RETURN_FETCH_DEBOUNCE_MS: int = int(os.getenv("RETURN_FETCH_DEBOUNCE_MS", "100"))
    RETURN_FETCH_TIMEOUT_SECONDS: float = float(os.getenv("RETURN_FETCH_TIMEOUT_SECONDS", "10"))
    STOREFRONT_API_URL: str = os.getenv("STOREFRONT_API_URL", "http://localhost:8000")
    STOREFRONT_API_TIMEOUT: float = float(os.getenv("STOREFRONT_API_TIMEOUT", "10"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def admin_emails(self) -> set[str]:
        emails = {e.strip().lower() for e in (self.ADMIN_EMAILS or "").split(",") if e.strip()}
        if self.ADMIN_EMAIL:
            emails.add(self.ADMIN_EMAIL.lower())
        return emails


@lru_cache
def get_settings():
    return Settings()
