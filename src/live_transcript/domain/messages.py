import json
import logging
from dataclasses import dataclass

from live_transcript.domain.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerMessage:
    text: str = ""


@dataclass(frozen=True)
class Status(ServerMessage):
    pass


@dataclass(frozen=True)
class Partial(ServerMessage):
    pass


@dataclass(frozen=True)
class Final(ServerMessage):
    pass


MESSAGE_TYPES: dict[str, type[ServerMessage]] = {
    "status": Status,
    "partial": Partial,
    "final": Final,
}


def parse_message(raw: str | bytes) -> ServerMessage:
    """Parse one inbound text frame, raising DecodeError on any malformed input."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}")

    kind = data.get("type")
    message_cls = MESSAGE_TYPES.get(kind) if isinstance(kind, str) else None
    if message_cls is None:
        raise DecodeError(f"unknown message type: {kind!r}")

    text = data.get("text")
    if not isinstance(text, str):
        raise DecodeError(f"'{kind}' message has no string 'text' field")

    return message_cls(text=text)


def decode_message(raw: str | bytes) -> ServerMessage | None:
    try:
        return parse_message(raw)
    except DecodeError as exc:
        logger.warning("Dropping server message: %s", exc)
        return None
