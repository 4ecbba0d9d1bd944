"""
Recorder configuration.

Defaults mirror the editor extension's constants; each can be overridden via
environment variables (e.g. in .env):

  RECORDER_SERVER_URL=http://localhost:3001
  RECORDER_CHUNK_INTERVAL_SECONDS=15
  RECORDER_CHUNK_EVENT_LIMIT=500
  RECORDER_MAX_RECORDING_MINUTES=30
  RECORDER_UPLOAD_TIMEOUT_SECONDS=10

HttpChunkTransport.from_config() builds the upload client from server_url and
upload_timeout.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SERVER_URL = "http://localhost:3001"
CHUNK_TIME_INTERVAL = 15.0               # seconds
CHUNK_EVENT_LIMIT = 500
MAX_RECORDING_TIME = 30 * 60 * 1000      # milliseconds
UPLOAD_TIMEOUT = 10.0                    # seconds


@dataclass(frozen=True)
class RecorderConfig:
    server_url: str = DEFAULT_SERVER_URL
    chunk_interval: Optional[float] = CHUNK_TIME_INTERVAL   # None disables the timer
    chunk_event_limit: int = CHUNK_EVENT_LIMIT
    max_recording_time_ms: int = MAX_RECORDING_TIME
    upload_timeout: float = UPLOAD_TIMEOUT

    def __post_init__(self):
        if self.chunk_event_limit < 1:
            raise ValueError("chunk_event_limit must be at least 1")
        if self.chunk_interval is not None and self.chunk_interval <= 0:
            raise ValueError("chunk_interval must be positive")
        if self.max_recording_time_ms <= 0:
            raise ValueError("max_recording_time_ms must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RecorderConfig":
        env = os.environ if environ is None else environ
        minutes = env.get("RECORDER_MAX_RECORDING_MINUTES")
        return cls(
            server_url=env.get("RECORDER_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/"),
            chunk_interval=float(env.get("RECORDER_CHUNK_INTERVAL_SECONDS", CHUNK_TIME_INTERVAL)),
            chunk_event_limit=int(env.get("RECORDER_CHUNK_EVENT_LIMIT", CHUNK_EVENT_LIMIT)),
            max_recording_time_ms=int(float(minutes) * 60 * 1000) if minutes else MAX_RECORDING_TIME,
            upload_timeout=float(env.get("RECORDER_UPLOAD_TIMEOUT_SECONDS", UPLOAD_TIMEOUT)),
        )
