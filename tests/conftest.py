import asyncio
from collections.abc import AsyncIterator
from typing import Any

import numpy as np
import pytest

from live_transcript.domain.controller import AudioSessionController
from live_transcript.domain.messages import ServerMessage, Status, decode_message
from live_transcript.domain.session import TranscriptionSession
from live_transcript.domain.state import ConnectionState
from live_transcript.domain.transcript import TranscriptReconciler
from live_transcript.ports.audio import AudioFrame


SAMPLE_RATE = 48000
BLOCK_SIZE = 128


def generate_silence(num_samples: int = BLOCK_SIZE) -> np.ndarray:
    return np.zeros(num_samples, dtype=np.float32)


def generate_sine_wave(
    frequency: float = 440.0,
    num_samples: int = BLOCK_SIZE,
    amplitude: float = 0.8,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    t = np.arange(num_samples) / sample_rate
    return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)


def make_frame(samples: np.ndarray | None = None, sample_rate: int = SAMPLE_RATE) -> AudioFrame:
    if samples is None:
        samples = generate_sine_wave()
    samples = np.array(samples, dtype=np.float32)
    samples.flags.writeable = False
    return AudioFrame(samples=samples, sample_rate=sample_rate)


class FakeAudioCapture:
    def __init__(
        self,
        frames: list[AudioFrame] | None = None,
        sample_rate: int = SAMPLE_RATE,
        fail_with: Exception | None = None,
    ) -> None:
        self._frames = list(frames or [])
        self._sample_rate = sample_rate
        self._fail_with = fail_with
        self._queue: asyncio.Queue[AudioFrame | None] | None = None
        self.started = False
        self.start_calls = 0
        self.stop_calls = 0
        self.dropped_frames = 0
        self.missed_deadlines = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    async def start(self) -> None:
        self.start_calls += 1
        if self._fail_with is not None:
            raise self._fail_with
        self._queue = asyncio.Queue()
        for frame in self._frames:
            self._queue.put_nowait(frame)
        self.started = True

    async def stop(self) -> None:
        self.stop_calls += 1
        if self._queue is not None:
            self._queue.put_nowait(None)
            self._queue = None
        self.started = False

    async def read_frames(self) -> AsyncIterator[AudioFrame]:
        queue = self._queue
        if queue is None:
            return
        while True:
            frame = await queue.get()
            if frame is None:
                break
            yield frame

    def feed_frame(self, frame: AudioFrame) -> None:
        if self._queue is not None:
            self._queue.put_nowait(frame)


class FakeTransport:
    def __init__(self, refuse: bool = False) -> None:
        self._refuse = refuse
        self._state = ConnectionState.DISCONNECTED
        self._inbound: asyncio.Queue[ServerMessage] = asyncio.Queue()
        self._listeners = []
        self.sent_frames: list[bytes] = []
        self.sent_json: list[dict[str, Any]] = []
        self.close_calls = 0
        self.connect_calls = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def add_state_listener(self, listener) -> None:
        self._listeners.append(listener)

    async def connect(self, endpoint: str | None = None) -> bool:
        self.connect_calls += 1
        if self._state is not ConnectionState.DISCONNECTED:
            return self._state is ConnectionState.CONNECTED
        self._set_state(ConnectionState.CONNECTING)
        if self._refuse:
            self._set_state(ConnectionState.DISCONNECTED)
            self._inbound.put_nowait(Status("disconnected"))
            return False
        self._set_state(ConnectionState.CONNECTED)
        self._inbound.put_nowait(Status("ready"))
        return True

    async def send(self, frame: AudioFrame) -> bool:
        if self._state is not ConnectionState.CONNECTED:
            return False
        self.sent_frames.append(frame.to_bytes())
        return True

    async def send_json(self, payload: dict[str, Any]) -> bool:
        if self._state is not ConnectionState.CONNECTED:
            return False
        self.sent_json.append(payload)
        return True

    async def messages(self) -> AsyncIterator[ServerMessage]:
        while True:
            message = await self._inbound.get()
            try:
                yield message
            finally:
                self._inbound.task_done()

    async def drained(self) -> None:
        await self._inbound.join()

    async def close(self) -> None:
        self.close_calls += 1
        if self._state is ConnectionState.DISCONNECTED:
            return
        self._set_state(ConnectionState.DISCONNECTED)
        self._inbound.put_nowait(Status("disconnected"))

    def deliver(self, raw: str) -> None:
        message = decode_message(raw)
        if message is not None:
            self._inbound.put_nowait(message)

    def drop_connection(self) -> None:
        if self._state is ConnectionState.CONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)
            self._inbound.put_nowait(Status("disconnected"))

    def _set_state(self, target: ConnectionState) -> None:
        previous = self._state
        self._state = target
        for listener in list(self._listeners):
            listener(previous, target)


@pytest.fixture
def fake_capture():
    return FakeAudioCapture(frames=[make_frame() for _ in range(3)])


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def controller(fake_capture, fake_transport):
    return AudioSessionController(capture=fake_capture, transport=fake_transport)


@pytest.fixture
def session(fake_transport, controller):
    return TranscriptionSession(
        transport=fake_transport,
        controller=controller,
        reconciler=TranscriptReconciler(),
    )


class GatedCapture(FakeAudioCapture):
    """FakeAudioCapture whose start() blocks until the test releases it."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.acquiring = asyncio.Event()
        self.release = asyncio.Event()

    async def start(self) -> None:
        self.acquiring.set()
        await self.release.wait()
        await super().start()
