"""Configuration package for the olympiad back-office."""

from olympiad.config.app_config import (
    AppConfig,
    AuthConfig,
    AwardBand,
    DatabaseConfig,
    EditionDefaults,
    FinalsConfig,
    StageRule,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "AwardBand",
    "DatabaseConfig",
    "EditionDefaults",
    "FinalsConfig",
    "StageRule",
    "clear_config_cache",
    "load_app_config",
]
