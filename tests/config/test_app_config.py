"""Tests for application configuration."""

from pathlib import Path

import pytest

from olympiad.config import AppConfig, clear_config_cache, load_app_config
from olympiad.config.app_config import CONFIG_FILE, DEV_JWT_SECRET


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Empty working directory with no config file and no overrides."""
    monkeypatch.chdir(tmp_path)
    for name in ("OLYMPIAD_DB_PATH", "JWT_SECRET", "OLYMPIAD_COOKIE_SECURE"):
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()


def _write_config(root: Path, text: str) -> None:
    path = root / CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class TestDefaults:
    """Tests for built-in defaults when no file exists."""

    def test_defaults_without_file(self, workdir):
        config = load_app_config()
        assert isinstance(config, AppConfig)
        assert config.database.path == Path("db/olympiad.db")
        assert config.auth.jwt_secret == DEV_JWT_SECRET
        assert config.auth.admin_session_days == 7
        assert config.auth.participant_session_days == 30

    def test_default_levels_and_age_rules(self, workdir):
        defaults = load_app_config().edition_defaults
        assert defaults.active_levels == ["Primary", "O-Level", "A-Level"]
        assert defaults.age_rules["Primary"] == {"min": 9, "max": 15}
        assert defaults.age_rules["O-Level"] == {"min": 11, "max": 18}
        assert defaults.age_rules["A-Level"] == {"min": 15, "max": 21}
        assert defaults.max_subjects_per_participant == 3

    def test_default_stage_rules(self, workdir):
        stages = load_app_config().edition_defaults.stages
        assert stages["Beginner"].pass_percentage == 50
        assert stages["Theory"].top_percent == 50
        assert stages["Practical"].top_percent == 30
        assert stages["Final"].pass_percentage is None
        assert stages["Final"].top_percent is None

    def test_default_award_bands(self, workdir):
        finals = load_app_config().finals
        assert [(b.award, b.percent) for b in finals.award_bands] == [
            ("GOLD", 10.0),
            ("SILVER", 20.0),
            ("BRONZE", 30.0),
        ]
        assert finals.default_award == "MERIT"


class TestYamlFile:
    """Tests for merging the YAML file over defaults."""

    def test_file_overrides_single_value(self, workdir):
        _write_config(workdir, "edition_defaults:\n  max_subjects_per_participant: 5\n")
        defaults = load_app_config().edition_defaults
        assert defaults.max_subjects_per_participant == 5
        # Untouched siblings keep their defaults
        assert defaults.active_levels == ["Primary", "O-Level", "A-Level"]

    def test_cache_until_reload(self, workdir):
        first = load_app_config()
        _write_config(workdir, "auth:\n  admin_session_days: 1\n")
        assert load_app_config() is first
        assert load_app_config(force_reload=True).auth.admin_session_days == 1

    def test_empty_file_uses_defaults(self, workdir):
        _write_config(workdir, "")
        assert load_app_config().auth.bcrypt_rounds == 10


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_db_path_and_secret(self, workdir, monkeypatch):
        monkeypatch.setenv("OLYMPIAD_DB_PATH", "/data/olympiad.db")
        monkeypatch.setenv("JWT_SECRET", "prod-secret")
        config = load_app_config(force_reload=True)
        assert config.database.path == Path("/data/olympiad.db")
        assert config.auth.jwt_secret == "prod-secret"

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("0", False)])
    def test_cookie_secure_flag(self, workdir, monkeypatch, value, expected):
        monkeypatch.setenv("OLYMPIAD_COOKIE_SECURE", value)
        assert load_app_config(force_reload=True).auth.cookie_secure is expected

    def test_env_wins_over_file(self, workdir, monkeypatch):
        _write_config(workdir, "auth:\n  jwt_secret: from-file\n")
        monkeypatch.setenv("JWT_SECRET", "from-env")
        assert load_app_config(force_reload=True).auth.jwt_secret == "from-env"
