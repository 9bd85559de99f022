from dataclasses import dataclass
from typing import Protocol, AsyncIterator

import numpy as np


@dataclass(frozen=True, eq=False)
class AudioFrame:
    samples: np.ndarray
    sample_rate: int

    def __len__(self) -> int:
        return len(self.samples)

    def to_bytes(self) -> bytes:
        return self.samples.astype("<f4", copy=False).tobytes()


class AudioCapturePort(Protocol):
    @property
    def sample_rate(self) -> int: ...
    @property
    def dropped_frames(self) -> int: ...
    @property
    def missed_deadlines(self) -> int: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def read_frames(self) -> AsyncIterator[AudioFrame]: ...
