"""Configuration statique du service de suivi des médicaments."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from medtrack.core.env_loader import load_env

_TRUE_VALUES = {"1", "true", "yes", "on", "y", "t"}
_FALSE_VALUES = {"0", "false", "no", "off", "n", "f"}
_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _get_env_flag(name: str, default: bool = False) -> bool:
    """Retourne une valeur booléenne à partir d'une variable d'environnement."""

    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def _get_env_choice(name: str, choices: set[str], default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in choices else default


def _get_env_int(name: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _get_env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _get_env_timezone(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return value


@dataclass(frozen=True)
class Settings:
    """Paramètres globaux lus depuis l'environnement.

    Les deux seuils de péremption sont volontairement distincts : la vue
    dispensaire signale les produits à 7 jours, le bandeau d'alerte de la
    clinique à 30 jours.
    """

    MEDTRACK_DEBUG: bool = False
    DATA_DIR: str | None = None
    DISPENSARY_EXPIRY_DAYS: int = 7
    ADVISORY_EXPIRY_DAYS: int = 30
    LOW_STOCK_THRESHOLD: int = 20
    CRITICAL_STOCK_THRESHOLD: int = 10
    CLINIC_TIMEZONE: str = "UTC"
    DB_BUSY_TIMEOUT: float = 30.0
    LOG_LEVEL: str = "info"

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.CLINIC_TIMEZONE)


def _get_stock_thresholds() -> tuple[int, int]:
    low = _get_env_int("LOW_STOCK_THRESHOLD", 20)
    critical = _get_env_int("CRITICAL_STOCK_THRESHOLD", 10)
    if critical > low:
        return 20, 10
    return low, critical


def load_settings() -> Settings:
    load_env()
    low_stock, critical_stock = _get_stock_thresholds()
    return Settings(
        MEDTRACK_DEBUG=_get_env_flag("MEDTRACK_DEBUG", default=False),
        DATA_DIR=os.getenv("MEDTRACK_DATA_DIR") or None,
        DISPENSARY_EXPIRY_DAYS=_get_env_int("DISPENSARY_EXPIRY_DAYS", 7, minimum=1),
        ADVISORY_EXPIRY_DAYS=_get_env_int("ADVISORY_EXPIRY_DAYS", 30, minimum=1),
        LOW_STOCK_THRESHOLD=low_stock,
        CRITICAL_STOCK_THRESHOLD=critical_stock,
        CLINIC_TIMEZONE=_get_env_timezone("CLINIC_TIMEZONE", "UTC"),
        DB_BUSY_TIMEOUT=_get_env_float("DB_BUSY_TIMEOUT", 30.0),
        LOG_LEVEL=_get_env_choice("LOG_LEVEL", _LOG_LEVELS, "info"),
    )


settings = load_settings()


def to_clinic_time(value: datetime) -> datetime:
    """Ramène un horodatage à l'heure locale naïve de la clinique."""
    if value.tzinfo is not None:
        return value.astimezone(settings.timezone).replace(tzinfo=None)
    return value
