import logging
from dataclasses import dataclass, replace

from live_transcript.domain.messages import Final, Partial, ServerMessage, Status

logger = logging.getLogger(__name__)

INITIAL_STATUS = "disconnected"


@dataclass(frozen=True)
class TranscriptState:
    status: str = INITIAL_STATUS
    preview: str = ""
    log: tuple[str, ...] = ()


def reduce(state: TranscriptState, message: ServerMessage) -> TranscriptState:
    """Apply one server message to the transcript.

    Partials replace the preview (latest wins), finals are appended to the
    log and clear the preview, statuses only touch ``status``.
    """
    if isinstance(message, Status):
        return replace(state, status=message.text)
    if isinstance(message, Partial):
        return replace(state, preview=message.text)
    if isinstance(message, Final):
        return replace(state, preview="", log=state.log + (message.text,))
    return state


class TranscriptReconciler:
    def __init__(self, initial: TranscriptState | None = None) -> None:
        self._state = initial or TranscriptState()

    @property
    def state(self) -> TranscriptState:
        return self._state

    @property
    def transcript(self) -> str:
        return "\n".join(self._state.log)

    def apply(self, message: ServerMessage) -> TranscriptState:
        self._state = reduce(self._state, message)
        if isinstance(message, Final):
            logger.info("Final: %s", message.text)
        elif isinstance(message, Partial):
            logger.debug("Partial: %s", message.text)
        else:
            logger.info("Status: %s", message.text)
        return self._state

    def clear_preview(self) -> None:
        self._state = replace(self._state, preview="")

    def reset(self) -> None:
        self._state = TranscriptState(status=self._state.status)
