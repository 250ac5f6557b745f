import os
from dotenv import load_dotenv
import secrets
from pydantic import BaseModel

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./favorites.db")

# TMDB catalog
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
TMDB_BASE_URL = os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3")
TMDB_IMAGE_BASE_URL = os.getenv("TMDB_IMAGE_BASE_URL", "https://image.tmdb.org/t/p/w500")
TMDB_LANGUAGE = os.getenv("TMDB_LANGUAGE", "pt-BR")
CATALOG_TIMEOUT_SECONDS = float(os.getenv("CATALOG_TIMEOUT_SECONDS", "10"))
CATALOG_MAX_CONCURRENCY = int(os.getenv("CATALOG_MAX_CONCURRENCY", "8"))

# What to do with a favorite whose catalog fetch failed
FAILED_FETCH_POLICIES = ("drop", "placeholder")


def parse_failed_fetch_policy(value: str) -> str:
    policy = (value or "").strip().lower()
    if policy not in FAILED_FETCH_POLICIES:
        raise ValueError(
            f"Invalid FAILED_FETCH_POLICY '{value}', expected one of {FAILED_FETCH_POLICIES}"
        )
    return policy


FAILED_FETCH_POLICY = parse_failed_fetch_policy(os.getenv("FAILED_FETCH_POLICY", "drop"))

# JWT Configuration
# IMPORTANT: Set JWT_SECRET_KEY in production - generate with: python -c "import secrets; print(secrets.token_hex(32))"
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", secrets.token_hex(32))
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "168"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Pagination defaults
FAVORITES_PAGE_LIMIT = 20
SHARED_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


class CatalogConfig(BaseModel):
    """Read-only settings handed to the catalog client at construction."""
    api_key: str
    base_url: str = "https://api.themoviedb.org/3"
    image_base_url: str = "https://image.tmdb.org/t/p/w500"
    language: str = "pt-BR"
    timeout: float = 10.0

    class Config:
        frozen = True


def get_catalog_config() -> CatalogConfig:
    return CatalogConfig(
        api_key=TMDB_API_KEY,
        base_url=TMDB_BASE_URL,
        image_base_url=TMDB_IMAGE_BASE_URL,
        language=TMDB_LANGUAGE,
        timeout=CATALOG_TIMEOUT_SECONDS,
    )
