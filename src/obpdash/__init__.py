"""obpdash: Session and data-sync core for an Open Bank Project dashboard.

This package provides the authenticated-session state machine and the
data-synchronization pipeline behind the dashboard:
- Session store, verifier and lifecycle controller for DirectLogin tokens
  and http-only cookie sessions
- Authenticated request gateway with bounded 401 recovery
- Time-boxed resource cache and the banks -> accounts -> transactions sync
- Typer CLI for driving a session from the terminal
"""

__version__ = "0.1.0"
