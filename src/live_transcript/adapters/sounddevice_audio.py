import logging
import os
from collections.abc import AsyncIterator

import sounddevice as sd

from live_transcript.adapters.frame_source import FrameSource
from live_transcript.domain.errors import MicrophonePermissionError, MicrophoneUnavailableError
from live_transcript.ports.audio import AudioFrame

logger = logging.getLogger(__name__)

PERMISSION_HINTS = ("permission", "denied", "not permitted", "not authorized")


class SounddeviceCapture:
    def __init__(
        self,
        device: str | int | None = None,
        blocksize: int = 128,
        queue_size: int = 256,
    ) -> None:
        self._device = device
        self._blocksize = blocksize
        self._queue_size = queue_size
        self._stream: sd.InputStream | None = None
        self._source: FrameSource | None = None
        self._sample_rate = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def blocksize(self) -> int:
        return self._blocksize

    @property
    def dropped_frames(self) -> int:
        return self._source.dropped_frames if self._source else 0

    @property
    def missed_deadlines(self) -> int:
        return self._source.missed_deadlines if self._source else 0

    async def start(self) -> None:
        if self._stream is not None:
            await self.stop()

        try:
            device = self._resolve_device()
            info = sd.query_devices(device, kind="input")
            self._sample_rate = int(info["default_samplerate"])
            self._source = FrameSource(sample_rate=self._sample_rate, maxsize=self._queue_size)
            self._stream = sd.InputStream(
                device=device,
                samplerate=self._sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self._blocksize,
                callback=self._source,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            await self.stop()
            raise _to_microphone_error(exc) from exc

        logger.info(
            "Audio capture started (device=%s, rate=%d, block=%d)",
            device, self._sample_rate, self._blocksize,
        )

    async def stop(self) -> None:
        if self._stream:
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError:
                logger.warning("Error while closing audio stream", exc_info=True)
            self._stream = None
            logger.info("Audio capture stopped")
        if self._source:
            await self._source.close()

    async def read_frames(self) -> AsyncIterator[AudioFrame]:
        if not self._source:
            return
        async for frame in self._source.frames():
            yield frame

    def _resolve_device(self) -> int | None:
        wanted = self._device
        if wanted is None or wanted == "":
            return None
        if isinstance(wanted, int) or wanted.isdigit():
            return int(wanted)
        needle = wanted.lower()
        matches = [
            (index, dev["name"])
            for index, dev in enumerate(sd.query_devices())
            if dev["max_input_channels"] > 0 and needle in dev["name"].lower()
        ]
        if matches:
            index, name = matches[0]
            logger.info("Input device %r matched #%d (%s)", wanted, index, name)
            return index
        # not listed by PortAudio: let PipeWire route the default device to it
        os.environ["PIPEWIRE_NODE"] = wanted
        logger.info("Input device %r not found, routing through PIPEWIRE_NODE", wanted)
        return None


def _to_microphone_error(exc: Exception) -> MicrophoneUnavailableError:
    message = str(exc)
    if any(hint in message.lower() for hint in PERMISSION_HINTS):
        return MicrophonePermissionError(message)
    return MicrophoneUnavailableError(message)


def list_input_devices() -> list[tuple[int, str, int]]:
    return [
        (i, dev["name"], int(dev["default_samplerate"]))
        for i, dev in enumerate(sd.query_devices())
        if dev["max_input_channels"] > 0
    ]
