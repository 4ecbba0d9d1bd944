import asyncio
from typing import Optional

import pytest

import store
from models.chunk import RecordingChunk
from recorder.transport import ChunkTransport, TransportNetworkError
from storage.blob import MemoryChunkStore


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTransport(ChunkTransport):
    """Records deliveries; send calls listed in `fail_calls` (1-based) raise."""

    def __init__(self, fail_calls=(), fail_end: bool = False):
        self.sent: list[RecordingChunk] = []
        self.ended: list[tuple] = []
        self.calls = 0
        self.fail_calls = set(fail_calls)
        self.fail_end = fail_end
        self.gate: Optional[asyncio.Event] = None

    async def send(self, session_id, chunk_index, chunk):
        self.calls += 1
        call = self.calls
        if self.gate is not None:
            await self.gate.wait()
        if call in self.fail_calls:
            raise TransportNetworkError(f"send #{call} failed")
        self.sent.append(chunk)
        return f"memory://{session_id}/{chunk_index}"

    async def list_chunks(self, session_id):
        return sorted(
            (c for c in self.sent if c.session_id == session_id),
            key=lambda c: c.chunk_index,
        )

    async def notify_end(self, session_id, end_time):
        self.ended.append((session_id, end_time))
        if self.fail_end:
            raise TransportNetworkError("end notification failed")

    def events(self, session_id: str = None):
        chunks = sorted(
            (c for c in self.sent if session_id is None or c.session_id == session_id),
            key=lambda c: c.chunk_index,
        )
        return [e for c in chunks for e in c.events]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture(autouse=True)
def _fresh_store(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    store.sessions.clear()
    store.set_chunk_store(MemoryChunkStore(scope="dev"))
    yield
    store.sessions.clear()
    store.set_chunk_store(None)
