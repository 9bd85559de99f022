import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from live_transcript.config import LiveTranscriptConfig
from live_transcript.domain.session import SessionSnapshot
from live_transcript.domain.state import ConnectionState
from live_transcript.log_format import ColoredFormatter

ENV_FILE_PATH = Path.home() / ".config" / "live-transcript" / "env"


def _load_env_file() -> None:
    if not ENV_FILE_PATH.is_file():
        return
    for entry in ENV_FILE_PATH.read_text().splitlines():
        entry = entry.strip()
        if entry.startswith("#") or "=" not in entry:
            continue
        key, value = (part.strip() for part in entry.split("=", 1))
        # the real environment wins over the file
        os.environ.setdefault(key, value.strip("'\""))


def _configure_logging(verbose: bool, log_file: str) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    handlers: list[logging.Handler] = [handler]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=handlers)
    logging.getLogger("websockets").setLevel(logging.INFO if verbose else logging.WARNING)


def main() -> None:
    _load_env_file()
    parser = argparse.ArgumentParser(description="Stream microphone audio to a live transcription server")
    parser.add_argument("--url", help="Transcription server WebSocket URL")
    parser.add_argument("--device", help="Input device name or index")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    config = LiveTranscriptConfig()
    if args.url:
        config.server_url = args.url
    if args.device:
        config.capture_device = args.device

    _configure_logging(args.verbose, config.log_file)

    if args.list_devices:
        from live_transcript.adapters.sounddevice_audio import list_input_devices

        for index, name, rate in list_input_devices():
            print(f"{index:>3}  {name} ({rate} Hz)")
        return

    sys.exit(asyncio.run(_run(config)))


class TerminalRenderer:
    """Prints committed lines and keeps the preview on a rewritable line."""

    def __init__(self, stream=None) -> None:
        self._stream = stream or sys.stdout
        self._committed = 0

    def __call__(self, snapshot: SessionSnapshot) -> None:
        for line in snapshot.log[self._committed:]:
            self._stream.write(f"\r\033[K{line}\n")
        self._committed = len(snapshot.log)
        self._stream.write(f"\r\033[K{snapshot.preview}")
        self._stream.flush()


async def _run(config: LiveTranscriptConfig) -> int:
    from live_transcript.factory import create_session
    from live_transcript.health import has_critical_failures, run_startup_checks

    results = run_startup_checks(config)
    if has_critical_failures(results):
        logging.error("Critical health check failures, aborting startup")
        return 1

    session = create_session(config)
    session.add_listener(TerminalRenderer())

    shutdown_event = asyncio.Event()
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    async with session:
        result = await session.connect()
        if not result.accepted:
            logging.error("Connect failed: %s", result.message)
            return 1

        result = await session.start()
        if not result.accepted:
            logging.error("Start failed: %s", result.message)
            return 1

        def on_change(snapshot: SessionSnapshot) -> None:
            if snapshot.connection is ConnectionState.DISCONNECTED and not shutdown_event.is_set():
                logging.warning("Server closed the connection")
                shutdown_event.set()

        session.add_listener(on_change)
        await shutdown_event.wait()

    print()
    return 0
