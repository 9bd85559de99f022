import pytest

from live_transcript.domain.errors import InvalidTransitionError
from live_transcript.domain.state import (
    ConnectionState,
    RecordingState,
    validate_transition,
)


class TestConnectionTransitions:
    def test_disconnected_to_connecting(self):
        validate_transition(ConnectionState.DISCONNECTED, ConnectionState.CONNECTING)

    def test_connecting_to_connected(self):
        validate_transition(ConnectionState.CONNECTING, ConnectionState.CONNECTED)

    def test_connecting_to_disconnected_on_refusal(self):
        validate_transition(ConnectionState.CONNECTING, ConnectionState.DISCONNECTED)

    def test_connected_to_disconnected(self):
        validate_transition(ConnectionState.CONNECTED, ConnectionState.DISCONNECTED)

    def test_invalid_disconnected_to_connected_skips_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(ConnectionState.DISCONNECTED, ConnectionState.CONNECTED)

    def test_invalid_connected_to_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(ConnectionState.CONNECTED, ConnectionState.CONNECTING)

    def test_invalid_self_transition(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(ConnectionState.CONNECTED, ConnectionState.CONNECTED)


class TestRecordingTransitions:
    def test_idle_to_recording(self):
        validate_transition(RecordingState.IDLE, RecordingState.RECORDING)

    def test_recording_to_idle(self):
        validate_transition(RecordingState.RECORDING, RecordingState.IDLE)

    def test_invalid_idle_to_idle(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(RecordingState.IDLE, RecordingState.IDLE)
