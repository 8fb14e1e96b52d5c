"""Tests for configuration loading."""

import pytest
from shared.config import load_config

pytestmark = pytest.mark.domain

CONFIG = """
database_uri = "sqlite:///base.db"
default_page_size = 25

[test]
database_uri = "sqlite:///test.db"
strict_status_transitions = true
"""


@pytest.fixture()
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "foodsaver.toml"
    path.write_text(CONFIG)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return path


class TestLoadConfig:
    def test_environment_overlay(self, config_file):
        config = load_config(env="test", path=config_file)
        assert config.env == "test"
        assert config.database_uri == "sqlite:///test.db"
        assert config.strict_status_transitions is True
        assert config.default_page_size == 25

    def test_base_settings_without_overlay(self, config_file):
        config = load_config(env="production", path=config_file)
        assert config.database_uri == "sqlite:///base.db"
        assert config.strict_status_transitions is False

    def test_database_url_wins(self, config_file, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u@h/db")
        assert load_config(env="test", path=config_file).database_uri == "postgresql+psycopg2://u@h/db"

    def test_explicit_overrides_win(self, config_file):
        assert load_config(env="test", path=config_file, max_page_size=10).max_page_size == 10

    def test_env_variable_selects_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("FOODSAVER_ENV", "test")
        assert load_config(path=config_file).env == "test"

    def test_config_file_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("FOODSAVER_CONFIG", str(config_file))
        assert load_config(env="test").database_uri == "sqlite:///test.db"
