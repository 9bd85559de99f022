import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from live_transcript.domain.errors import TransportClosedError
from live_transcript.domain.messages import ServerMessage, Status, decode_message
from live_transcript.domain.state import ConnectionState, validate_transition
from live_transcript.ports.audio import AudioFrame
from live_transcript.ports.transport import ConnectionListener

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "ws://localhost:8000/ws"
STATUS_READY = "ready"
STATUS_DISCONNECTED = "disconnected"


class WebSocketTransport:
    """The single socket between capture and the transcription service.

    Outbound audio goes as binary messages of little-endian float32 samples.
    Inbound text frames are decoded into ServerMessages and queued for one
    consumer; connection changes are queued as Status messages as well.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        open_timeout: float = 5.0,
        close_timeout: float = 2.0,
    ) -> None:
        self._endpoint = endpoint
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout
        self._state = ConnectionState.DISCONNECTED
        self._ws: ClientConnection | None = None
        self._receiver_task: asyncio.Task | None = None
        self._inbound: asyncio.Queue[ServerMessage] = asyncio.Queue()
        self._listeners: list[ConnectionListener] = []
        self.frames_sent = 0
        self.frames_dropped = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def add_state_listener(self, listener: ConnectionListener) -> None:
        self._listeners.append(listener)

    async def connect(self, endpoint: str | None = None) -> bool:
        if self._state is not ConnectionState.DISCONNECTED:
            return self._state is ConnectionState.CONNECTED
        if endpoint:
            self._endpoint = endpoint

        self._transition_to(ConnectionState.CONNECTING)
        try:
            self._ws = await ws_connect(
                self._endpoint,
                open_timeout=self._open_timeout,
                close_timeout=self._close_timeout,
            )
        except (OSError, asyncio.TimeoutError, InvalidURI, InvalidHandshake) as exc:
            logger.warning("Connection to %s failed: %s", self._endpoint, exc)
            self._ws = None
            self._transition_to(ConnectionState.DISCONNECTED)
            self._publish(Status(STATUS_DISCONNECTED))
            return False

        if self._state is not ConnectionState.CONNECTING:
            # close() ran while the handshake was in flight
            await self._ws.close()
            self._ws = None
            return False

        self._transition_to(ConnectionState.CONNECTED)
        self._publish(Status(STATUS_READY))
        self._receiver_task = asyncio.create_task(self._receive_loop(self._ws))
        return True

    async def send(self, frame: AudioFrame) -> bool:
        return await self._send(frame.to_bytes())

    async def send_json(self, payload: dict[str, Any]) -> bool:
        return await self._send(json.dumps(payload))

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
        task = self._receiver_task
        self._receiver_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, ConnectionClosed):
                logger.debug("Socket already gone while closing", exc_info=True)

        self._mark_disconnected()

    async def _send(self, data: bytes | str) -> bool:
        ws = self._ws
        if self._state is not ConnectionState.CONNECTED or ws is None:
            self.frames_dropped += 1
            logger.debug("%s", TransportClosedError())
            return False
        try:
            await ws.send(data)
        except ConnectionClosed:
            self.frames_dropped += 1
            logger.debug("%s", TransportClosedError("socket closed during send"))
            return False
        self.frames_sent += 1
        return True

    async def _receive_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    logger.debug("Ignoring %d-byte binary message from server", len(raw))
                    continue
                message = decode_message(raw)
                if message is not None:
                    self._publish(message)
        except ConnectionClosed as exc:
            logger.warning("Connection closed by peer: %s", exc)
        if self._ws is ws:
            self._ws = None
            self._mark_disconnected()

    def _mark_disconnected(self) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        self._transition_to(ConnectionState.DISCONNECTED)
        self._publish(Status(STATUS_DISCONNECTED))

    def _publish(self, message: ServerMessage) -> None:
        self._inbound.put_nowait(message)

    def _transition_to(self, target: ConnectionState) -> None:
        validate_transition(self._state, target)
        logger.info("Connection: %s -> %s", self._state.name, target.name)
        previous = self._state
        self._state = target
        for listener in list(self._listeners):
            listener(previous, target)
