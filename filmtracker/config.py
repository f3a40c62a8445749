import os
from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

TMDB_BASE = os.getenv("TMDB_BASE", "https://api.themoviedb.org/3")
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"
TMDB_LANGUAGE = os.getenv("TMDB_LANGUAGE", "en-US")

DB = dict(
    host=os.getenv("POSTGRES_HOST", "localhost"),
    port=int(os.getenv("POSTGRES_PORT", "5432")),
    dbname=os.getenv("POSTGRES_DB", "filmtracker"),
    user=os.getenv("POSTGRES_USER", "postgres"),
    password=os.getenv("POSTGRES_PASSWORD", "postgres"),
)

DEFAULT_USER_ID = int(os.getenv("APP_USER_ID", "1"))
APPROVED_BY = os.getenv("APPROVED_BY", "admin")


def require_tmdb_key() -> str:
    key = os.getenv("TMDB_API_KEY")
    if not key:
        raise ConfigError("TMDB_API_KEY environment variable is required")
    return key
