"""Tests for configuration loading."""

import pytest

from autopilot.config import STOP_LEVEL, Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("AUTOPILOT_URL", "AUTOPILOT_CDP_URL", "AUTOPILOT_HEADLESS", "AUTOPILOT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults_match_timings(self):
        config = Config()

        assert config.automation.key_delay == 0.010
        assert config.automation.stop_level == STOP_LEVEL == 1000
        assert config.automation.discovery_retry_interval == 0.2
        assert config.automation.discovery_retry_window == 5.0
        assert config.monitor.resume_delay == 0.025
        assert config.monitor.level_poll_interval == 0.015
        assert config.monitor.level_change_timeout == 3.5
        assert config.monitor.board_poll_interval == 0.012
        assert config.monitor.board_stable_duration == 0.022
        assert config.monitor.board_stable_timeout == 0.4

    def test_yaml_sections(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "browser:\n"
            "  url: http://localhost:3000\n"
            "  headless: true\n"
            "automation:\n"
            "  key_delay: 0.05\n"
            "  max_cycles: 3\n"
            "monitor:\n"
            "  level_change_timeout: 1.0\n"
        )
        config = load_config(str(path))

        assert config.browser.url == "http://localhost:3000"
        assert config.browser.headless is True
        assert config.automation.key_delay == 0.05
        assert config.automation.max_cycles == 3
        assert config.monitor.level_change_timeout == 1.0
        # Unset keys keep their defaults
        assert config.monitor.board_stable_timeout == 0.4
        assert config.logging.level == "INFO"

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"))
        assert config.browser.url == Config().browser.url

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)).monitor.resume_delay == 0.025

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("browser:\n  url: http://from-file\n")
        monkeypatch.setenv("AUTOPILOT_URL", "http://from-env")
        monkeypatch.setenv("AUTOPILOT_CDP_URL", "http://127.0.0.1:9222")
        monkeypatch.setenv("AUTOPILOT_HEADLESS", "yes")
        monkeypatch.setenv("AUTOPILOT_LOG_LEVEL", "DEBUG")
        config = load_config(str(path))

        assert config.browser.url == "http://from-env"
        assert config.browser.cdp_url == "http://127.0.0.1:9222"
        assert config.browser.headless is True
        assert config.logging.level == "DEBUG"

    @pytest.mark.parametrize("value,expected", [("0", False), ("false", False), ("1", True), ("On", True)])
    def test_headless_flag(self, tmp_path, monkeypatch, value, expected):
        monkeypatch.setenv("AUTOPILOT_HEADLESS", value)
        assert load_config(str(tmp_path / "none.yaml")).browser.headless is expected

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("monitor:\n  settle_time: 1\n")
        with pytest.raises(TypeError):
            load_config(str(path))

    @pytest.mark.parametrize("text", ["monitor: 0.4\n", "browser:\n  - url\n", "- browser\n"])
    def test_non_mapping_rejected(self, tmp_path, text):
        """Sections and the document itself must be mappings."""
        path = tmp_path / "config.yaml"
        path.write_text(text)
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_unknown_key_named_in_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("automation:\n  key_delay: 0.02\n  keydelay: 0.02\n")
        with pytest.raises(TypeError, match="keydelay"):
            load_config(str(path))
