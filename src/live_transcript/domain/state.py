from enum import Enum, auto

from live_transcript.domain.errors import InvalidTransitionError


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


class RecordingState(Enum):
    IDLE = auto()
    RECORDING = auto()


VALID_CONNECTION_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.DISCONNECTED: {ConnectionState.CONNECTING},
    ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED},
    ConnectionState.CONNECTED: {ConnectionState.DISCONNECTED},
}

VALID_RECORDING_TRANSITIONS: dict[RecordingState, set[RecordingState]] = {
    RecordingState.IDLE: {RecordingState.RECORDING},
    RecordingState.RECORDING: {RecordingState.IDLE},
}


def validate_transition(current: Enum, target: Enum) -> None:
    if isinstance(current, ConnectionState):
        allowed = VALID_CONNECTION_TRANSITIONS.get(current, set())
    elif isinstance(current, RecordingState):
        allowed = VALID_RECORDING_TRANSITIONS.get(current, set())
    else:
        allowed = set()
    if target not in allowed:
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
