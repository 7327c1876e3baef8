"""Environment-driven runtime settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass


logger = logging.getLogger(__name__)

_DB_PATH_ENV = "TRANSFERSCORE_DB_PATH"
_DEFAULT_BAND_ENV = "TRANSFERSCORE_DEFAULT_LEAGUE_BAND"
_VALIDITY_DAYS_ENV = "TRANSFERSCORE_ASSESSMENT_VALIDITY_DAYS"
_ESTIMATE_INTL_ENV = "TRANSFERSCORE_ESTIMATE_INTL_MINUTES"

_DEFAULT_LEAGUE_BAND = 3
_DEFAULT_VALIDITY_DAYS = 30


@dataclass(frozen=True)
class Settings:
    db_path: str | None = None
    default_league_band: int = _DEFAULT_LEAGUE_BAND
    assessment_validity_days: int = _DEFAULT_VALIDITY_DAYS
    estimate_international_minutes: bool = False


def _env_int(
    name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if (min_value is not None and value < min_value) or (max_value is not None and value > max_value):
        logger.warning("Out of range value for %s: %s; using default %d", name, raw, default)
        return default
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off", ""}:
        return False
    logger.warning("Invalid flag for %s: %s; using default %s", name, raw, default)
    return default


def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv(_DB_PATH_ENV) or None,
        default_league_band=_env_int(_DEFAULT_BAND_ENV, _DEFAULT_LEAGUE_BAND, min_value=1, max_value=5),
        assessment_validity_days=_env_int(_VALIDITY_DAYS_ENV, _DEFAULT_VALIDITY_DAYS, min_value=1),
        estimate_international_minutes=_env_flag(_ESTIMATE_INTL_ENV, False),
    )
