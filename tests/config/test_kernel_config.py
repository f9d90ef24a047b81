"""
Tests for allocation_config: YAML loading, environment overrides, bridges.
"""

import pytest
from sqlalchemy import inspect

from allocation_config import DEFAULT_CONFIG_PATH, ConfigError, get_active_config
from allocation_config.bridges import apply_config
from allocation_config.loader import ENV_DATABASE_URL, ENV_LOG_LEVEL, parse_config
from allocation_kernel.db.engine import create_tables, get_engine, reset_engine


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestLoad:

    def test_default_config(self):
        config = get_active_config(environ={})
        assert config.config_id == "allocation-kernel-default"
        assert config.version == 1
        assert config.database.url == "sqlite:///allocation_tokens.db"
        assert config.database.pool_size == 5
        assert config.logging.level == "INFO"
        assert config.source == str(DEFAULT_CONFIG_PATH)

    def test_env_overrides(self):
        config = get_active_config(
            environ={ENV_DATABASE_URL: "sqlite:///other.db", ENV_LOG_LEVEL: "debug"},
        )
        assert config.database.url == "sqlite:///other.db"
        assert config.logging.level == "DEBUG"
        assert config.database.max_overflow == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "database: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            get_active_config(path, environ={})

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "- one\n- two\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            get_active_config(path, environ={})

    def test_database_url_required(self, tmp_path):
        path = _write(tmp_path, "config_id: x\ndatabase:\n  echo: true\n")
        with pytest.raises(ConfigError, match="database.url is required"):
            get_active_config(path, environ={})

    def test_url_from_environment_only(self, tmp_path):
        path = _write(tmp_path, "config_id: x\n")
        config = get_active_config(path, environ={ENV_DATABASE_URL: "sqlite://"})
        assert config.database.url == "sqlite://"

    def test_bad_log_level(self):
        with pytest.raises(ConfigError, match="logging.level"):
            parse_config({"database": {"url": "sqlite://"}, "logging": {"level": "LOUD"}})

    @pytest.mark.parametrize("value", [-1, "five", True])
    def test_bad_pool_size(self, value):
        with pytest.raises(ConfigError, match="database.pool_size"):
            parse_config({"database": {"url": "sqlite://", "pool_size": value}})

    def test_load_is_logged(self, captured_logs):
        get_active_config(environ={})
        record = next(r for r in captured_logs() if r["message"] == "config_loaded")
        assert record["config_id"] == "allocation-kernel-default"
        assert record["log_level"] == "INFO"


class TestBridges:

    def test_apply_config_initializes_engine(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'configured.db'}"
        config = get_active_config(environ={ENV_DATABASE_URL: url})
        try:
            engine = apply_config(config)
            assert get_engine() is engine
            create_tables()
            assert "allocation_tokens" in inspect(engine).get_table_names()
        finally:
            reset_engine()
