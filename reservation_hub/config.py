"""Environment-driven settings for the reservation hub and its engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Type


class BaseConfig:
    """Defaults every environment inherits; most can be overridden from the environment."""

    PROJECT_ROOT = Path(__file__).resolve().parent.parent
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")
    DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{PROJECT_ROOT / 'reservation_hub.db'}"
    SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "5"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    JSON_SORT_KEYS = False

    # "flag" records overlaps on both bookings; "reject" refuses the booking.
    RESERVATION_CONFLICT_POLICY = os.getenv("RESERVATION_CONFLICT_POLICY", "flag")
    # "cascade" removes a resource's bookings and schedules with it; "guard"
    # refuses while live bookings exist unless the caller forces it.
    RESOURCE_DELETE_POLICY = os.getenv("RESOURCE_DELETE_POLICY", "cascade")

    OPERATING_DAY_START_HOUR = int(os.getenv("OPERATING_DAY_START_HOUR", "6"))
    OPERATING_DAY_END_HOUR = int(os.getenv("OPERATING_DAY_END_HOUR", "22"))
    SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "60"))
    UTILIZATION_WINDOW_DAYS = int(os.getenv("UTILIZATION_WINDOW_DAYS", "30"))
    DEFAULT_OPERATING_HOURS_PER_DAY = float(os.getenv("DEFAULT_OPERATING_HOURS_PER_DAY", "16"))
    MAINTENANCE_DUE_SOON_DAYS = int(os.getenv("MAINTENANCE_DUE_SOON_DAYS", "7"))
    MAX_RECURRENCE_OCCURRENCES = int(os.getenv("MAX_RECURRENCE_OCCURRENCES", "366"))


class DevelopmentConfig(BaseConfig):
    """Local development with verbose logging."""

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    """pytest settings; fixtures usually point DATABASE_URL at a temp file."""

    DEBUG = False
    TESTING = True
    DATABASE_URL = "sqlite:///:memory:"
    RESERVATION_CONFLICT_POLICY = "flag"
    RESOURCE_DELETE_POLICY = "cascade"


class ProductionConfig(BaseConfig):
    """Deployed settings that only log warnings and above."""

    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")


_CONFIGS: dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> Type[BaseConfig]:
    """Pick the configuration class named by FLASK_ENV, defaulting to development."""

    return _CONFIGS.get(os.getenv("FLASK_ENV", "development").lower(), DevelopmentConfig)
