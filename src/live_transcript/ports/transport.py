from typing import Any, Callable, Protocol, AsyncIterator

from live_transcript.domain.messages import ServerMessage
from live_transcript.domain.state import ConnectionState
from live_transcript.ports.audio import AudioFrame

ConnectionListener = Callable[[ConnectionState, ConnectionState], None]


class TransportPort(Protocol):
    @property
    def state(self) -> ConnectionState: ...
    async def connect(self, endpoint: str | None = None) -> bool: ...
    async def send(self, frame: AudioFrame) -> bool: ...
    async def send_json(self, payload: dict[str, Any]) -> bool: ...
    def messages(self) -> AsyncIterator[ServerMessage]: ...
    async def drained(self) -> None: ...
    async def close(self) -> None: ...
    def add_state_listener(self, listener: ConnectionListener) -> None: ...
