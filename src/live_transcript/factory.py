from live_transcript.config import LiveTranscriptConfig
from live_transcript.adapters.sounddevice_audio import SounddeviceCapture
from live_transcript.adapters.websocket_transport import WebSocketTransport
from live_transcript.domain.controller import AudioSessionController
from live_transcript.domain.session import TranscriptionSession
from live_transcript.domain.transcript import TranscriptReconciler


def create_capture(config: LiveTranscriptConfig) -> SounddeviceCapture:
    return SounddeviceCapture(
        device=config.capture_device or None,
        blocksize=config.blocksize,
        queue_size=config.frame_queue_size,
    )


def create_transport(config: LiveTranscriptConfig) -> WebSocketTransport:
    return WebSocketTransport(
        endpoint=config.server_url,
        open_timeout=config.open_timeout_seconds,
        close_timeout=config.close_timeout_seconds,
    )


def create_session(config: LiveTranscriptConfig) -> TranscriptionSession:
    transport = create_transport(config)
    controller = AudioSessionController(
        capture=create_capture(config),
        transport=transport,
        announce_sample_rate=config.announce_sample_rate,
    )
    return TranscriptionSession(
        transport=transport,
        controller=controller,
        reconciler=TranscriptReconciler(),
        endpoint=config.server_url,
    )
