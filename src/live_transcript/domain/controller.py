import asyncio
import contextlib
import logging
from typing import Callable

from live_transcript.domain.errors import DeadlineMissedError, MicrophoneUnavailableError, NotConnectedError
from live_transcript.domain.state import ConnectionState, RecordingState, validate_transition
from live_transcript.ports.audio import AudioCapturePort
from live_transcript.ports.transport import TransportPort

logger = logging.getLogger(__name__)

RecordingListener = Callable[[RecordingState, RecordingState], None]


class AudioSessionController:
    """Owns the microphone stream and the frame pump feeding the transport.

    The pump task is the consuming end of the capture graph: without it the
    FrameSource queue fills and every block is dropped, so it is created
    together with the stream and torn down with it.
    """

    def __init__(
        self,
        capture: AudioCapturePort,
        transport: TransportPort,
        announce_sample_rate: bool = False,
    ) -> None:
        self._capture = capture
        self._transport = transport
        self._announce_sample_rate = announce_sample_rate

        self._state = RecordingState.IDLE
        self._acquiring = False
        self._pump_task: asyncio.Task | None = None
        self._teardown_task: asyncio.Task | None = None
        self._reported_deadline_misses = 0
        self._listeners: list[RecordingListener] = []

        self._transport.add_state_listener(self._on_connection_change)

    @property
    def state(self) -> RecordingState:
        return self._state

    def add_state_listener(self, listener: RecordingListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> bool:
        """Open the microphone and begin streaming frames.

        Returns False when another start is still acquiring the microphone;
        that call is ignored.
        """
        if self._transport.state is not ConnectionState.CONNECTED:
            raise NotConnectedError()
        if self._acquiring:
            logger.debug("Start ignored, capture is already being acquired")
            return False

        self._acquiring = True
        try:
            await self._finish_teardown()
            if self._state is RecordingState.RECORDING:
                await self._release_audio()
                self._transition_to(RecordingState.IDLE)

            try:
                await self._capture.start()
            except MicrophoneUnavailableError as exc:
                logger.error("Microphone unavailable: %s", exc)
                await self.stop()
                raise

            if self._transport.state is not ConnectionState.CONNECTED:
                await self.stop()
                raise NotConnectedError("connection lost while acquiring the microphone")

            if self._announce_sample_rate:
                await self._transport.send_json(
                    {"type": "config", "sample_rate": self._capture.sample_rate}
                )

            self._reported_deadline_misses = 0
            self._pump_task = asyncio.create_task(self._pump_frames())
            self._transition_to(RecordingState.RECORDING)
        finally:
            self._acquiring = False
        return True

    async def stop(self) -> None:
        await self._finish_teardown()
        await self._release_audio()
        if self._state is RecordingState.RECORDING:
            self._transition_to(RecordingState.IDLE)
        await self._transport.close()

    async def _release_audio(self) -> None:
        task = self._pump_task
        self._pump_task = None
        if task and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._capture.stop()

    async def _pump_frames(self) -> None:
        async for frame in self._capture.read_frames():
            await self._transport.send(frame)
            self._report_deadline_misses()
        logger.debug("Frame pump finished")

    def _report_deadline_misses(self) -> None:
        missed = self._capture.missed_deadlines
        if missed > self._reported_deadline_misses:
            logger.warning("%s", DeadlineMissedError(missed - self._reported_deadline_misses))
            self._reported_deadline_misses = missed

    def _on_connection_change(self, previous: ConnectionState, current: ConnectionState) -> None:
        if current is not ConnectionState.DISCONNECTED or self._state is not RecordingState.RECORDING:
            return
        logger.warning("Connection lost while recording, stopping capture")
        self._transition_to(RecordingState.IDLE)
        self._teardown_task = asyncio.get_running_loop().create_task(self._release_after_disconnect())

    async def _finish_teardown(self) -> None:
        task = self._teardown_task
        self._teardown_task = None
        if task and not task.done() and task is not asyncio.current_task():
            await task

    async def _release_after_disconnect(self) -> None:
        try:
            await self._release_audio()
        except Exception:
            logger.exception("Releasing the microphone after connection loss failed")

    def _transition_to(self, target: RecordingState) -> None:
        validate_transition(self._state, target)
        logger.info("State: %s -> %s", self._state.name, target.name)
        previous = self._state
        self._state = target
        for listener in list(self._listeners):
            listener(previous, target)
