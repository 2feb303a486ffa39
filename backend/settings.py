import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "app.db")


class Settings:
    def __init__(self) -> None:
        self.MAPBOX_TOKEN: str | None = os.getenv("MAPBOX_TOKEN") or None
        self.DIRECTIONS_ENABLED: bool = _as_bool(os.getenv("DIRECTIONS_ENABLED"), True)
        self.DIRECTIONS_PROFILE: str = os.getenv("DIRECTIONS_PROFILE", "driving")
        self.DIRECTIONS_BASE_URL: str = os.getenv(
            "DIRECTIONS_BASE_URL", "https://api.mapbox.com/directions/v5/mapbox"
        )
        self.DIRECTIONS_TIMEOUT: float = float(os.getenv("DIRECTIONS_TIMEOUT", "5"))
        self.DIRECTIONS_CACHE_PATH: str | None = os.getenv("DIRECTIONS_CACHE_PATH") or None
        self.DIRECTIONS_CACHE_TTL_SECONDS: int = int(
            os.getenv("DIRECTIONS_CACHE_TTL_SECONDS", str(7 * 24 * 3600))
        )
        self.HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
