import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

import sounddevice as sd

from live_transcript.config import LiveTranscriptConfig

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: LiveTranscriptConfig) -> list[HealthCheckResult]:
    results = [
        _check_audio_device(config),
        _check_server_url(config),
    ]

    passed = sum(1 for r in results if r.passed)

    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    critical_checks = {"audio_device", "server_url"}
    return any(not r.passed and r.name in critical_checks for r in results)


def _check_audio_device(config: LiveTranscriptConfig) -> HealthCheckResult:
    name = "audio_device"
    try:
        device_name = config.capture_device
        if device_name:
            for dev in sd.query_devices():
                if device_name.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                    return HealthCheckResult(name=name, passed=True, detail=f"Device '{device_name}' found")

        try:
            default = sd.query_devices(kind="input")
        except sd.PortAudioError:
            return HealthCheckResult(name=name, passed=False, detail="No input devices available")

        detail = f"default input: {default['name']} @ {int(default['default_samplerate'])} Hz"
        if device_name:
            detail = f"'{device_name}' not in PortAudio (will use PIPEWIRE_NODE), {detail}"
        return HealthCheckResult(name=name, passed=True, detail=detail)
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))


def _check_server_url(config: LiveTranscriptConfig) -> HealthCheckResult:
    name = "server_url"
    parts = urlsplit(config.server_url)
    if parts.scheme not in ("ws", "wss"):
        return HealthCheckResult(name=name, passed=False, detail=f"Unsupported scheme in {config.server_url!r}")
    if not parts.hostname:
        return HealthCheckResult(name=name, passed=False, detail=f"No host in {config.server_url!r}")
    return HealthCheckResult(name=name, passed=True, detail=config.server_url)
