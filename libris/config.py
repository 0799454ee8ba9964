# libris/config.py
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

DEFAULT_DB_PATH = Path.home() / ".libris" / "library.db"
DEFAULT_SEED_PATH = Path(__file__).parent / "data" / "default_data.json"

_TRUTHY = {"1", "true", "yes", "on"}


class OrphanPolicy(BaseModel):
    """Which entity types are deleted once no junction row references them"""
    authors: bool = True
    tags: bool = False


class Settings(BaseModel):
    database_url: str
    seed_source: str
    orphans: OrphanPolicy = OrphanPolicy()
    log_level: str = "WARNING"
    busy_timeout: float = 5.0


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def load_settings(database_url: Optional[str] = None) -> Settings:
    """Build settings from LIBRIS_* environment variables.

    Args:
        database_url: Overrides LIBRIS_DATABASE_URL when given

    Returns:
        Settings instance
    """
    url = database_url or os.getenv("LIBRIS_DATABASE_URL")
    if not url:
        DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{DEFAULT_DB_PATH}"

    return Settings(
        database_url=url,
        seed_source=os.getenv("LIBRIS_SEED_SOURCE", str(DEFAULT_SEED_PATH)),
        orphans=OrphanPolicy(
            authors=_env_flag("LIBRIS_PRUNE_ORPHAN_AUTHORS", True),
            tags=_env_flag("LIBRIS_PRUNE_ORPHAN_TAGS", False),
        ),
        log_level=os.getenv("LIBRIS_LOG_LEVEL", "WARNING"),
        busy_timeout=float(os.getenv("LIBRIS_BUSY_TIMEOUT", "5")),
    )
