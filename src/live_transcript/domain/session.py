import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable

from live_transcript.domain.controller import AudioSessionController
from live_transcript.domain.errors import (
    CONNECTION_FAILED,
    ERROR_MESSAGES,
    START_IN_PROGRESS,
    LiveTranscriptError,
)
from live_transcript.domain.state import ConnectionState, RecordingState
from live_transcript.domain.transcript import TranscriptReconciler, TranscriptState
from live_transcript.ports.transport import TransportPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    connection: ConnectionState
    recording: RecordingState
    status: str
    preview: str
    log: tuple[str, ...]


@dataclass(frozen=True)
class IntentResult:
    accepted: bool
    reason: str = ""
    message: str = ""

    @classmethod
    def ok(cls) -> "IntentResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str, message: str = "") -> "IntentResult":
        return cls(accepted=False, reason=reason, message=message or ERROR_MESSAGES.get(reason, reason))


SnapshotListener = Callable[[SessionSnapshot], None]


class TranscriptionSession:
    """One capture-and-transcribe session, owned by the hosting process.

    All state lives on the event loop. Inbound messages are drained by a
    single task and applied to the reconciler in arrival order; listeners get
    a fresh snapshot after every change.
    """

    def __init__(
        self,
        transport: TransportPort,
        controller: AudioSessionController,
        reconciler: TranscriptReconciler | None = None,
        endpoint: str | None = None,
    ) -> None:
        self._transport = transport
        self._controller = controller
        self._reconciler = reconciler or TranscriptReconciler()
        self._endpoint = endpoint
        self._listeners: list[SnapshotListener] = []
        self._drain_task: asyncio.Task | None = None

        self._transport.add_state_listener(lambda _prev, _cur: self._notify())
        self._controller.add_state_listener(lambda _prev, _cur: self._notify())

    @property
    def connection_state(self) -> ConnectionState:
        return self._transport.state

    @property
    def recording_state(self) -> RecordingState:
        return self._controller.state

    @property
    def transcript(self) -> TranscriptState:
        return self._reconciler.state

    @property
    def status(self) -> str:
        return self._reconciler.state.status

    @property
    def preview(self) -> str:
        return self._reconciler.state.preview

    @property
    def log(self) -> tuple[str, ...]:
        return self._reconciler.state.log

    def snapshot(self) -> SessionSnapshot:
        state = self._reconciler.state
        return SessionSnapshot(
            connection=self.connection_state,
            recording=self.recording_state,
            status=state.status,
            preview=state.preview,
            log=state.log,
        )

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    async def connect(self) -> IntentResult:
        self._ensure_draining()
        if self._transport.state is ConnectionState.DISCONNECTED:
            # a new connection starts without the previous one's preview
            await self.settle()
            self._reconciler.clear_preview()
        if await self._transport.connect(self._endpoint):
            return IntentResult.ok()
        if self._transport.state is ConnectionState.CONNECTING:
            return IntentResult.ok()
        return IntentResult.rejected(CONNECTION_FAILED)

    async def start(self) -> IntentResult:
        try:
            started = await self._controller.start()
        except LiveTranscriptError as exc:
            logger.warning("Start rejected (%s): %s", exc.code, exc)
            return IntentResult.rejected(exc.code, exc.user_message)
        if not started:
            return IntentResult.rejected(START_IN_PROGRESS)
        return IntentResult.ok()

    async def stop(self) -> IntentResult:
        await self._controller.stop()
        return IntentResult.ok()

    async def settle(self) -> None:
        await self._transport.drained()

    async def close(self) -> None:
        await self.stop()
        if self._drain_task:
            await self.settle()
            self._drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None

    async def __aenter__(self) -> "TranscriptionSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain_messages())

    async def _drain_messages(self) -> None:
        async for message in self._transport.messages():
            self._reconciler.apply(message)
            self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
