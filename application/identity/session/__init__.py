"""Session state for the active process."""

from application.identity.session.session_store import SessionState, SessionStore

__all__ = ["SessionState", "SessionStore"]
