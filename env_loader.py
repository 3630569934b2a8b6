from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_LOADED = False
_TRUTHY = {"1", "true", "yes", "on"}


def app_env() -> str:
    return os.getenv("APP_ENV", "local").strip().lower() or "local"


def is_production() -> bool:
    return app_env() == "production"


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_environment() -> None:
    global _LOADED
    if _LOADED:
        return

    root = Path(__file__).resolve().parent
    env_name = app_env()

    # Real process environment wins over both dotenv files.
    preexisting = dict(os.environ)

    base = root / ".env"
    scoped = root / f".env.{env_name}"
    if base.exists():
        load_dotenv(base, override=False)
    if scoped.exists():
        load_dotenv(scoped, override=True)

    for key, value in preexisting.items():
        os.environ[key] = value

    _LOADED = True
