from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv, dotenv_values

# ──────────────────────────────────────────────────────────────
#  Project root & .env loading
# ──────────────────────────────────────────────────────────────

ROOT_DIR: Path = Path(__file__).resolve().parent

# Exported shell variables take precedence over .env entries.
load_dotenv(ROOT_DIR / ".env", override=False)

# ──────────────────────────────────────────────────────────────
#  Public helpers
# ──────────────────────────────────────────────────────────────

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_SECRET_MARKERS: tuple[str, ...] = ("SECRET", "TOKEN", "PASSWORD", "KEY")


def env(key: str, default: Any = None, cast: type | None = str) -> Any:
    """
    Read setting *key* from the environment.

    Unset or whitespace-only values yield *default*, as does a value *cast*
    cannot convert.  ``cast=bool`` accepts ``1/true/yes/on`` (any case).
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    if cast is bool:
        return raw.lower() in _TRUTHY
    if cast is None:
        return raw
    try:
        return cast(raw)
    except (TypeError, ValueError):
        return default


def _masked(key: str, value: str | None) -> str:
    """Render *value* for the debug dump, hiding anything credential-like."""
    if value and any(marker in key.upper() for marker in _SECRET_MARKERS):
        return "***"
    return value or ""


def _log_env_file(path: Path) -> None:
    logger = logging.getLogger("config")
    if not path.exists():
        logger.debug("No .env file found under %s", ROOT_DIR)
        return
    settings = "\n".join(f"{k}={_masked(k, v)}" for k, v in dotenv_values(path).items())
    logger.debug("Settings from %s:\n%s", path.name, settings)


# ──────────────────────────────────────────────────────────────
#  Global debug flag
# ──────────────────────────────────────────────────────────────

ENABLE_DEBUG: bool = env("ENABLE_DEBUG", False, cast=bool)

if ENABLE_DEBUG:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s | %(message)s")
    _log_env_file(ROOT_DIR / ".env")

__all__ = ["ROOT_DIR", "env", "ENABLE_DEBUG"]
