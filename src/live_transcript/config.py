from pydantic_settings import BaseSettings, SettingsConfigDict


class LiveTranscriptConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_TRANSCRIPT_")

    server_url: str = "ws://localhost:8000/ws"
    open_timeout_seconds: float = 5.0
    close_timeout_seconds: float = 2.0

    capture_device: str = ""
    blocksize: int = 128
    frame_queue_size: int = 256

    # The wire format carries no sample rate; enable to send it up front.
    announce_sample_rate: bool = False

    log_file: str = ""
