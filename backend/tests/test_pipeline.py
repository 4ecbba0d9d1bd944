"""End to end: capture -> chunks -> store -> analysis."""

import pytest

from analysis.behavior import analyze_events
from recorder.config import RecorderConfig
from recorder.controller import SessionRegistry
from recorder.transport import StoreChunkTransport
from storage.blob import MemoryChunkStore


class TestPipeline:
    @pytest.mark.asyncio
    async def test_recorded_session_round_trips_through_store(self, clock):
        chunk_store = MemoryChunkStore(scope="dev")
        ended = []

        async def on_end(session_id, end_time):
            ended.append(session_id)

        registry = SessionRegistry(
            StoreChunkTransport(chunk_store, on_end=on_end),
            RecorderConfig(chunk_interval=None, chunk_event_limit=7),
            clock=clock,
        )
        registry.start("link-1")
        session = registry.get("link-1")

        session.on_file_open("main.py")
        for i in range(20):
            clock.advance(20)
            session.on_text_edit("main.py", str(i))
            if i == 9:
                await session.tick()
        clock.advance(3 * 60 * 1000)
        session.on_tab_change("util.py")
        session.on_text_edit("util.py", "def helper(x):\n    return x\n" + "#" * 100)

        await registry.stop("link-1")

        stored = await chunk_store.list_chunks("link-1")
        assert [s.pathname.rsplit("-", 1)[1] for s in stored] == [
            f"{i:04d}.json" for i in range(len(stored))
        ]
        events = await chunk_store.load_events("link-1")
        assert len(events) == 23
        assert [e.timestamp for e in events] == sorted(e.timestamp for e in events)

        summary = analyze_events(events)
        assert summary.files_opened == ["main.py"]
        assert summary.text_edit_count == 21
        assert summary.tab_switch_count == 1
        assert summary.high_frequency_edit_burst_count == 4
        assert summary.rapid_insertion_count == 1
        assert summary.copy_paste_pattern_count == 1
        assert summary.duration_minutes == 3
        assert ended == ["link-1"]
