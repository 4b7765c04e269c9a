"""Application configuration loader.

Loads centralized configuration from data/config/olympiad_config_v1.yaml,
falling back to built-in defaults. A few settings can be overridden from the
environment (database path, JWT secret, cookie security) so deployments never
need to commit secrets to the YAML file.

Usage:
    from olympiad.config.app_config import load_app_config

    config = load_app_config()
    db_path = config.database.path
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/olympiad_config_v1.yaml")

DEV_JWT_SECRET = "your-secret-key-change-in-production"


@dataclass
class DatabaseConfig:
    """SQLite database location."""

    path: Path = Path("db/olympiad.db")


@dataclass
class AuthConfig:
    """Password hashing and session cookie settings."""

    jwt_secret: str = DEV_JWT_SECRET
    algorithm: str = "HS256"
    admin_session_days: int = 7
    participant_session_days: int = 30
    cookie_secure: bool = False
    bcrypt_rounds: int = 10


@dataclass
class StageRule:
    """Advancement rule for one competition stage."""

    pass_percentage: float | None = None
    top_percent: float | None = None
    pass_count: int | None = None


@dataclass
class EditionDefaults:
    """Defaults applied to new editions when the admin omits a setting."""

    active_levels: list[str] = field(default_factory=list)
    active_subjects: dict[str, list[str]] = field(default_factory=dict)
    age_rules: dict[str, dict[str, int]] = field(default_factory=dict)
    max_subjects_per_participant: int = 3
    stages: dict[str, StageRule] = field(default_factory=dict)


@dataclass
class AwardBand:
    """Share of ranked finalists receiving an award."""

    award: str
    percent: float


@dataclass
class FinalsConfig:
    """Award assignment settings for the final stage."""

    award_bands: list[AwardBand] = field(default_factory=list)
    default_award: str = "MERIT"


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    edition_defaults: EditionDefaults = field(default_factory=EditionDefaults)
    finals: FinalsConfig = field(default_factory=FinalsConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {"path": "db/olympiad.db"},
        "auth": {
            "jwt_secret": DEV_JWT_SECRET,
            "algorithm": "HS256",
            "admin_session_days": 7,
            "participant_session_days": 30,
            "cookie_secure": False,
            "bcrypt_rounds": 10,
        },
        "edition_defaults": {
            "active_levels": ["Primary", "O-Level", "A-Level"],
            "active_subjects": {
                "Primary": ["Math", "Science", "ICT"],
                "O-Level": ["Math", "Biology", "Chemistry", "Physics", "ICT", "Agriculture"],
                "A-Level": ["Math", "Biology", "Chemistry", "Physics", "ICT", "Agriculture"],
            },
            "age_rules": {
                "Primary": {"min": 9, "max": 15},
                "O-Level": {"min": 11, "max": 18},
                "A-Level": {"min": 15, "max": 21},
            },
            "max_subjects_per_participant": 3,
            "stages": {
                "Beginner": {"pass_percentage": 50},
                "Theory": {"top_percent": 50},
                "Practical": {"top_percent": 30},
                "Final": {},
            },
        },
        "finals": {
            "award_bands": [
                {"award": "GOLD", "percent": 10},
                {"award": "SILVER", "percent": 20},
                {"award": "BRONZE", "percent": 30},
            ],
            "default_award": "MERIT",
        },
    }


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply OLYMPIAD_DB_PATH, JWT_SECRET and OLYMPIAD_COOKIE_SECURE."""
    if db_path := os.environ.get("OLYMPIAD_DB_PATH"):
        data["database"]["path"] = db_path
    if secret := os.environ.get("JWT_SECRET"):
        data["auth"]["jwt_secret"] = secret
    if secure := os.environ.get("OLYMPIAD_COOKIE_SECURE"):
        data["auth"]["cookie_secure"] = _env_flag(secure)
    return data


def _parse_stage_rule(data: dict[str, Any] | None) -> StageRule:
    data = data or {}
    return StageRule(
        pass_percentage=data.get("pass_percentage"),
        top_percent=data.get("top_percent"),
        pass_count=data.get("pass_count"),
    )


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    db_data = data.get("database", {})
    database = DatabaseConfig(path=Path(db_data.get("path", "db/olympiad.db")))

    auth_data = data.get("auth", {})
    auth = AuthConfig(
        jwt_secret=auth_data.get("jwt_secret", DEV_JWT_SECRET),
        algorithm=auth_data.get("algorithm", "HS256"),
        admin_session_days=int(auth_data.get("admin_session_days", 7)),
        participant_session_days=int(auth_data.get("participant_session_days", 30)),
        cookie_secure=bool(auth_data.get("cookie_secure", False)),
        bcrypt_rounds=int(auth_data.get("bcrypt_rounds", 10)),
    )

    ed = data.get("edition_defaults", {})
    edition_defaults = EditionDefaults(
        active_levels=list(ed.get("active_levels", [])),
        active_subjects={k: list(v) for k, v in ed.get("active_subjects", {}).items()},
        age_rules={k: dict(v) for k, v in ed.get("age_rules", {}).items()},
        max_subjects_per_participant=int(ed.get("max_subjects_per_participant", 3)),
        stages={name: _parse_stage_rule(rule) for name, rule in ed.get("stages", {}).items()},
    )

    finals_data = data.get("finals", {})
    finals = FinalsConfig(
        award_bands=[
            AwardBand(award=b["award"], percent=float(b["percent"]))
            for b in finals_data.get("award_bands", [])
        ],
        default_award=finals_data.get("default_award", "MERIT"),
    )

    return AppConfig(
        database=database,
        auth=auth,
        edition_defaults=edition_defaults,
        finals=finals,
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, merging the YAML file over the defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data = _get_defaults()

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        file_data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
        data = _merge(data, file_data)
    else:
        logger.info("using_default_config")

    _cached_config = _parse_config(_apply_env_overrides(data))

    if _cached_config.auth.jwt_secret == DEV_JWT_SECRET:
        logger.warning("auth.default_jwt_secret_in_use")

    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
