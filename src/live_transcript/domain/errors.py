"""Error taxonomy and reason codes surfaced to the presentation layer."""

PERMISSION_DENIED = "PERMISSION_DENIED"
MICROPHONE_UNAVAILABLE = "MICROPHONE_UNAVAILABLE"
NOT_CONNECTED = "NOT_CONNECTED"
CONNECTION_FAILED = "CONNECTION_FAILED"
TRANSPORT_CLOSED = "TRANSPORT_CLOSED"
DECODE_ERROR = "DECODE_ERROR"
DEADLINE_MISSED = "DEADLINE_MISSED"
START_IN_PROGRESS = "START_IN_PROGRESS"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone access was denied.",
    MICROPHONE_UNAVAILABLE: "No usable microphone input is available.",
    NOT_CONNECTED: "Not connected to the transcription server.",
    CONNECTION_FAILED: "Could not connect to the transcription server.",
    TRANSPORT_CLOSED: "Connection is closed, audio frame dropped.",
    DECODE_ERROR: "Server message could not be decoded.",
    DEADLINE_MISSED: "Audio callback overran its block deadline.",
    START_IN_PROGRESS: "The microphone is still being opened.",
}


class LiveTranscriptError(Exception):
    code = ""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or ERROR_MESSAGES.get(self.code, self.code))

    @property
    def user_message(self) -> str:
        return ERROR_MESSAGES.get(self.code, str(self))


class MicrophoneUnavailableError(LiveTranscriptError):
    code = MICROPHONE_UNAVAILABLE


class MicrophonePermissionError(MicrophoneUnavailableError):
    code = PERMISSION_DENIED


class NotConnectedError(LiveTranscriptError):
    code = NOT_CONNECTED


class ConnectionFailedError(LiveTranscriptError):
    code = CONNECTION_FAILED


class TransportClosedError(LiveTranscriptError):
    code = TRANSPORT_CLOSED


class DecodeError(LiveTranscriptError):
    code = DECODE_ERROR


class DeadlineMissedError(LiveTranscriptError):
    code = DEADLINE_MISSED

    def __init__(self, missed: int) -> None:
        self.missed = missed
        super().__init__(f"{missed} audio block(s) missed their deadline")


class InvalidTransitionError(Exception):
    pass
