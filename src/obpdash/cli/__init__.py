"""obpdash CLI package.

This package provides a command-line interface for signing in to an Open
Bank Project dashboard session and syncing its banking data.
"""

from .main import app, main

__all__ = ["app", "main"]
