"""Tests for environment-driven logging settings."""

import logging

import pytest

from marketplace.utils.logging import LoggingSettings, add_context, clear_context, setup_stdlib_logging


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "LOG_DIR", "ENVIRONMENT", "PROTEAN_ENV"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoggingSettings:
    def test_defaults_to_development(self, clean_env):
        settings = LoggingSettings.from_env()
        assert settings.environment == "development"
        assert settings.level == "DEBUG"
        assert settings.log_dir == "logs"
        assert not settings.structured

    @pytest.mark.parametrize(
        "environment, level, structured",
        [("production", "INFO", True), ("staging", "INFO", True), ("test", "WARNING", False), ("qa", "INFO", False)],
    )
    def test_level_follows_environment(self, clean_env, environment, level, structured):
        clean_env.setenv("ENVIRONMENT", environment)
        settings = LoggingSettings.from_env()
        assert settings.level == level
        assert settings.structured is structured

    def test_protean_env_is_the_fallback(self, clean_env):
        clean_env.setenv("PROTEAN_ENV", "Production")
        assert LoggingSettings.from_env().environment == "production"

    def test_explicit_level_wins(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "production")
        clean_env.setenv("LOG_LEVEL", "debug")
        assert LoggingSettings.from_env().level == "DEBUG"

    def test_log_dir_argument_overrides_env(self, clean_env):
        clean_env.setenv("LOG_DIR", "/var/log/marketplace")
        assert LoggingSettings.from_env().log_dir == "/var/log/marketplace"
        assert LoggingSettings.from_env(log_dir="elsewhere").log_dir == "elsewhere"


class TestStdlibSetup:
    def test_installs_console_and_rotating_files(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        settings = LoggingSettings(environment="test", level="WARNING", log_dir=str(tmp_path / "logs"))
        try:
            setup_stdlib_logging(settings)

            assert len(root.handlers) == 3
            assert (tmp_path / "logs" / "marketplace.log").exists()
            assert (tmp_path / "logs" / "marketplace_error.log").exists()
            assert root.handlers[2].level == logging.ERROR
            assert logging.getLogger("protean").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)


def test_context_binding_round_trip():
    import structlog

    clear_context()
    add_context(request_id="req-1", user_id="buyer-1")
    assert structlog.contextvars.get_contextvars() == {"request_id": "req-1", "user_id": "buyer-1"}
    clear_context()
    assert structlog.contextvars.get_contextvars() == {}
