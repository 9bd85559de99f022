from collections.abc import AsyncIterator

import janus
import numpy as np

from live_transcript.ports.audio import AudioFrame


class FrameSource:
    """Real-time side of the capture graph.

    Instances are handed to PortAudio as the stream callback. Each call copies
    the block out of PortAudio's reusable buffer and enqueues it without
    blocking; the event loop consumes frames through ``frames()``. Must be
    created while an event loop is running.
    """

    def __init__(self, sample_rate: int, maxsize: int = 256) -> None:
        self._sample_rate = sample_rate
        self._queue: janus.Queue[AudioFrame] = janus.Queue(maxsize=maxsize)
        self.dropped_frames = 0
        self.missed_deadlines = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def __call__(self, indata: np.ndarray | None, frames: int, time_info, status) -> None:
        if status:
            self.missed_deadlines += 1
        if indata is None or frames == 0 or len(indata) == 0 or self._queue.closed:
            return
        channel = indata[:, 0] if indata.ndim > 1 else indata
        samples = np.array(channel, dtype=np.float32)
        samples.flags.writeable = False
        try:
            self._queue.sync_q.put_nowait(AudioFrame(samples=samples, sample_rate=self._sample_rate))
        except janus.SyncQueueFull:
            self.dropped_frames += 1
        except janus.SyncQueueShutDown:
            pass

    async def frames(self) -> AsyncIterator[AudioFrame]:
        while True:
            try:
                frame = await self._queue.async_q.get()
            except janus.AsyncQueueShutDown:
                break
            yield frame

    async def close(self) -> None:
        if self._queue.closed:
            return
        self._queue.close()
        await self._queue.wait_closed()
