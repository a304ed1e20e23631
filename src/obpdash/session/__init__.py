"""Authenticated-session state: credential, store, verifier and lifecycle."""
