"""Logging setup for obpdash."""

from .config import CredentialFilter, LoggingConfig, setup_logging, token_prefix

__all__ = ["CredentialFilter", "LoggingConfig", "setup_logging", "token_prefix"]
