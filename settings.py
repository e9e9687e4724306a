from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

DEFAULT_API_BASE = "https://pokeapi.co/api/v2"
DEFAULT_TIMEOUT = 10.0
DEFAULT_INDEX_LIMIT = 1302
DEFAULT_MAX_WORKERS = 10

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    index_limit: int = DEFAULT_INDEX_LIMIT
    max_workers: int = DEFAULT_MAX_WORKERS
    verify_types: bool = False
    log_level: str = "INFO"


def _env_number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", key, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %s", key, raw, default)
        return default
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings from ``POKESEARCH_*`` environment variables, merged with defaults."""
    env = os.environ if env is None else env
    api_base = (env.get("POKESEARCH_API_BASE") or DEFAULT_API_BASE).strip().rstrip("/")
    verify_raw = (env.get("POKESEARCH_VERIFY_TYPES") or "").strip().lower()
    return Settings(
        api_base=api_base or DEFAULT_API_BASE,
        timeout=_env_number(env, "POKESEARCH_TIMEOUT", DEFAULT_TIMEOUT, float),
        index_limit=_env_number(env, "POKESEARCH_INDEX_LIMIT", DEFAULT_INDEX_LIMIT, int),
        max_workers=_env_number(env, "POKESEARCH_MAX_WORKERS", DEFAULT_MAX_WORKERS, int),
        verify_types=verify_raw in {"1", "true", "yes", "on"},
        log_level=(env.get("POKESEARCH_LOG_LEVEL") or "INFO").strip().upper() or "INFO",
    )


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        logger.warning("Unknown log level %r; keeping INFO", settings.log_level)
        level = logging.INFO
    logging.getLogger("pokeapi_live").setLevel(level)
    logging.getLogger("lookup").setLevel(level)
    logging.getLogger("streamlit_app").setLevel(level)
