"""Session management: mounted source, engine ownership and recovery."""

from vto.session.manager import MediaSession, SessionHandle, SessionManager
from vto.session.state import ALLOWED_TRANSITIONS, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "MediaSession",
    "SessionHandle",
    "SessionManager",
    "can_transition",
]
