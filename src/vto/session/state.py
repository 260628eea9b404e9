"""Session lifecycle state machine.

Legal transitions:

    UNMOUNTED  -> MOUNTING
    MOUNTING   -> MOUNTED | UNMOUNTED (mount failed)
    MOUNTED    -> EXECUTING | UNMOUNTING
    EXECUTING  -> MOUNTED | RECOVERING
    RECOVERING -> MOUNTED | FAILED
    FAILED     -> UNMOUNTING
    UNMOUNTING -> UNMOUNTED
"""

from __future__ import annotations

from vto.domain.enums import SessionState
from vto.exceptions import InvalidStateTransitionError

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.UNMOUNTED: frozenset({SessionState.MOUNTING}),
    SessionState.MOUNTING: frozenset({SessionState.MOUNTED, SessionState.UNMOUNTED}),
    SessionState.MOUNTED: frozenset({SessionState.EXECUTING, SessionState.UNMOUNTING}),
    SessionState.EXECUTING: frozenset({SessionState.MOUNTED, SessionState.RECOVERING}),
    SessionState.RECOVERING: frozenset({SessionState.MOUNTED, SessionState.FAILED}),
    SessionState.FAILED: frozenset({SessionState.UNMOUNTING}),
    SessionState.UNMOUNTING: frozenset({SessionState.UNMOUNTED}),
}


def can_transition(current: SessionState, target: SessionState) -> bool:
    """Check whether current -> target is a legal edge."""
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: SessionState, target: SessionState) -> None:
    """Raise InvalidStateTransitionError if current -> target is illegal."""
    if not can_transition(current, target):
        raise InvalidStateTransitionError(current.value, target.value)
