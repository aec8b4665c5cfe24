"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from ratify.config import DEFAULT_DATA_PATH, DEFAULT_EVENT_LOG_PATH, Settings
from ratify.identity.credentials import DEFAULT_ITERATIONS


_VARS = [
    "RATIFY_DATA_PATH",
    "RATIFY_EVENT_LOG_PATH",
    "RATIFY_ADMIN_PIN",
    "RATIFY_PIN_ITERATIONS",
    "RATIFY_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so values loaded from a .env file are undone too.
    for name in _VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings.from_env(load_file=False)
        assert settings.data_path == DEFAULT_DATA_PATH
        assert settings.event_log_path == DEFAULT_EVENT_LOG_PATH
        assert settings.admin_pin is None
        assert settings.pin_iterations == DEFAULT_ITERATIONS
        assert settings.log_level == "WARNING"

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATIFY_DATA_PATH", "/srv/ratify/data.json")
        monkeypatch.setenv("RATIFY_ADMIN_PIN", "root")
        monkeypatch.setenv("RATIFY_PIN_ITERATIONS", "5000")
        monkeypatch.setenv("RATIFY_LOG_LEVEL", "info")
        settings = Settings.from_env(load_file=False)
        assert settings.data_path == Path("/srv/ratify/data.json")
        assert settings.admin_pin == "root"
        assert settings.pin_iterations == 5000
        assert settings.log_level == "INFO"

    def test_empty_event_log_path_disables_audit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATIFY_EVENT_LOG_PATH", "")
        assert Settings.from_env(load_file=False).event_log_path is None

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_bad_iterations(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("RATIFY_PIN_ITERATIONS", value)
        with pytest.raises(ValueError, match="RATIFY_PIN_ITERATIONS"):
            Settings.from_env(load_file=False)

    def test_reads_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("RATIFY_ADMIN_PIN=from-file\n", encoding="utf-8")
        settings = Settings.from_env(env_file=env_file)
        assert settings.admin_pin == "from-file"
