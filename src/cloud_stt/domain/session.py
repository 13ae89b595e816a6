from enum import Enum, auto


class SessionState(Enum):
    CONNECTING = auto()
    CONFIGURING = auto()
    STREAMING = auto()
    AWAITING_RESULT = auto()
    CLOSED = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.CONNECTING: {SessionState.CONFIGURING, SessionState.CLOSED},
    SessionState.CONFIGURING: {
        SessionState.STREAMING,
        SessionState.AWAITING_RESULT,
        SessionState.CLOSED,
    },
    SessionState.STREAMING: {SessionState.AWAITING_RESULT, SessionState.CLOSED},
    SessionState.AWAITING_RESULT: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}


class InvalidSessionTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidSessionTransitionError(
            f"Cannot transition from {current.name} to {target.name}"
        )
