"""Tests for centralized logging configuration."""

import logging
import sys
from collections.abc import Generator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import pytest

from obpdash.logging.config import (
    CredentialFilter,
    LoggingConfig,
    redact,
    setup_logging,
    token_prefix,
)


def _force_config(log_to_file: bool = False, **kwargs: Any) -> LoggingConfig:
    """Return a LoggingConfig that forces handler replacement."""
    return LoggingConfig(log_to_file=log_to_file, force_reconfigure=True, **kwargs)


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.fixture(autouse=True)
    def _reset_root_logger(self) -> Generator[None, Any, None]:
        """Remove handlers added during each test to avoid leaking state."""
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        yield
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)

    @pytest.mark.unit
    def test_console_handler_uses_stderr(self) -> None:
        """Console output goes to stderr so command output on stdout stays clean."""
        setup_logging(config=_force_config(), cli_mode=True)
        root = logging.getLogger()

        stream_handlers = [
            h
            for h in root.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        assert stream_handlers, "Expected at least one StreamHandler"
        for h in stream_handlers:
            stream: object = getattr(cast(Any, h), "stream", None)
            assert stream is sys.stderr

    @pytest.mark.unit
    def test_verbose_enables_debug(self) -> None:
        setup_logging(config=_force_config(), verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_http_stack_is_quieted(self) -> None:
        setup_logging(config=_force_config(), verbose=True)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    @pytest.mark.unit
    def test_file_logging_adds_rotating_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "obpdash.log"
        setup_logging(config=_force_config(log_to_file=True, log_file_path=log_file))

        handlers = logging.getLogger().handlers
        assert any(isinstance(h, RotatingFileHandler) for h in handlers)
        assert log_file.parent.exists()


class TestLoggingEnvironment:
    """Tests for environment-driven logging configuration."""

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("LOG_BACKUP_COUNT", "2")

        config = LoggingConfig.from_environment()

        assert config.level == "WARNING"
        assert config.log_to_file is True
        assert config.backup_count == 2

    @pytest.mark.unit
    def test_defaults_log_to_console_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("LOG_LEVEL", "LOG_TO_FILE"):
            monkeypatch.delenv(key, raising=False)
        config = LoggingConfig.from_environment()
        assert config.level == "INFO"
        assert config.log_to_file is False


class TestTokenPrefix:
    """Tokens are only ever logged as a short prefix."""

    @pytest.mark.unit
    def test_token_is_truncated(self) -> None:
        assert token_prefix("abcdefghijkl") == "abcde..."

    @pytest.mark.unit
    def test_empty_token(self) -> None:
        assert token_prefix("") == "<empty>"


class TestCredentialRedaction:
    """Credentials are masked before any handler formats a record."""

    @pytest.mark.unit
    def test_direct_login_header_is_masked(self) -> None:
        header = 'DirectLogin username="alice",password="hunter2",consumer_key="ck"'
        assert redact(header) == (
            'DirectLogin username="alice",password="***",consumer_key="ck"'
        )
        assert redact('DirectLogin token="abc.def"') == 'DirectLogin token="***"'

    @pytest.mark.unit
    def test_bearer_value_is_masked(self) -> None:
        assert redact("Authorization: Bearer eyJhbGciOi.x-y") == "Authorization: Bearer ***"

    @pytest.mark.unit
    def test_plain_messages_are_untouched(self) -> None:
        assert redact("Fetching accounts for bank rbs") == "Fetching accounts for bank rbs"

    @pytest.mark.unit
    def test_filter_rewrites_record(self) -> None:
        record = logging.LogRecord(
            "obpdash", logging.INFO, __file__, 1, "sent %s", ('token="secret"',), None
        )

        assert CredentialFilter().filter(record)
        assert record.getMessage() == 'sent token="***"'

    @pytest.mark.unit
    def test_handlers_carry_filter(self) -> None:
        root = logging.getLogger()
        original = list(root.handlers)
        try:
            setup_logging(config=_force_config())
            assert all(
                any(isinstance(f, CredentialFilter) for f in h.filters)
                for h in root.handlers
            )
        finally:
            for handler in root.handlers:
                if handler not in original:
                    handler.close()
            root.handlers = original
