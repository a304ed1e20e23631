"""Logging configuration for obpdash.

Handlers are shared by the CLI and by any host application embedding the
session and sync core. Every handler carries a ``CredentialFilter`` so a
DirectLogin header or token that ends up in a message is masked before it
reaches the console or the log file.
"""

import logging
import os
import re
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

# DirectLogin token="...", username="...", password="..."
_DIRECT_LOGIN_FIELD = re.compile(r'\b(token|password)="[^"]*"', re.IGNORECASE)
_BEARER_VALUE = re.compile(r"\b(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)

NOISY_LOGGERS = ("httpx", "httpcore")


@dataclass
class LoggingConfig:
    """Settings for console and file logging."""

    level: str = "INFO"
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    cli_format_string: str = "%(message)s"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/obpdash.log")
    max_file_size_mb: int = 10
    backup_count: int = 3
    force_reconfigure: bool = False

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        """Build the configuration from LOG_* environment variables."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_to_file=os.getenv("LOG_TO_FILE", "false").lower() == "true",
            log_file_path=Path(os.getenv("LOG_FILE_PATH", "logs/obpdash.log")),
            max_file_size_mb=int(os.getenv("LOG_MAX_FILE_SIZE_MB", "10")),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "3")),
        )


def token_prefix(token: str) -> str:
    """Render a credential safely for log output."""
    return f"{token[:5]}..." if token else "<empty>"


def redact(message: str) -> str:
    """Mask DirectLogin fields and bearer values in a log message."""
    message = _DIRECT_LOGIN_FIELD.sub(lambda m: f'{m.group(1)}="***"', message)
    return _BEARER_VALUE.sub(lambda m: f"{m.group(1)}***", message)


class CredentialFilter(logging.Filter):
    """Rewrites records so credentials never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        config: Logging configuration; read from the environment when None
        cli_mode: Use the bare message format for interactive output
        verbose: Log at DEBUG regardless of the configured level
    """
    if config is None:
        config = LoggingConfig.from_environment()

    level = logging.DEBUG if verbose else getattr(logging, config.level)
    credential_filter = CredentialFilter()

    # stderr keeps stdout free for command output
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        logging.Formatter(config.cli_format_string if cli_mode else config.format_string)
    )
    handlers: list[logging.Handler] = [console]

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(config.format_string))
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(credential_filter)

    logging.basicConfig(level=level, handlers=handlers, force=config.force_reconfigure)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
