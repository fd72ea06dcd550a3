"""Session package."""

from docuhub.session.store import SessionState, SessionStore

__all__ = ["SessionState", "SessionStore"]
