"""Utility modules for obpdash.

This package provides the persisted client-visible state (cookies and
local-storage flags) shared by the session components.
"""

from .client_state import ClientCookie, ClientState, ClientStateStore

__all__ = [
    "ClientCookie",
    "ClientState",
    "ClientStateStore",
]
