import asyncio

import pytest

from models.event import EventType, RecordingEvent
from recorder.accumulator import ChunkAccumulator
from models.chunk import MAX_CHUNK_INDEX
from recorder.transport import InvalidChunkError, TransportError

from conftest import FakeTransport


def _events(n, start=0):
    return [
        RecordingEvent(type=EventType.TEXT_EDIT, timestamp=start + i, data={"text": str(i)})
        for i in range(n)
    ]


def _accumulator(transport, clock=None, **kwargs):
    acc = ChunkAccumulator("sess-1", transport, clock=clock or (lambda: 0), **kwargs)
    acc.open()
    return acc


class TestCountTrigger:
    @pytest.mark.asyncio
    async def test_501_events_flush_once_and_keep_one(self, transport):
        acc = _accumulator(transport)
        for event in _events(501):
            acc.record(event)

        assert len(acc.pending) == 1
        await acc.drain()
        assert len(transport.sent) == 1
        assert transport.sent[0].chunk_index == 0
        assert len(transport.sent[0].events) == 500
        assert acc.next_chunk_index == 1

    @pytest.mark.asyncio
    async def test_custom_limit(self, transport):
        acc = _accumulator(transport, event_limit=3)
        for event in _events(7):
            acc.record(event)
        await acc.drain()
        assert [len(c.events) for c in transport.sent] == [3, 3]
        assert len(acc.pending) == 1


class TestFlush:
    @pytest.mark.asyncio
    async def test_flush_now_on_empty_buffer_is_noop(self, transport):
        acc = _accumulator(transport)
        assert await acc.flush_now() is None
        assert await acc.tick() is None
        assert transport.calls == 0
        assert acc.next_chunk_index == 0

    @pytest.mark.asyncio
    async def test_tick_sends_partial_chunk(self, transport, clock):
        acc = _accumulator(transport, clock=clock)
        for event in _events(3):
            acc.record(event)
        chunk = await acc.tick()
        assert chunk.chunk_index == 0
        assert len(chunk.events) == 3
        assert chunk.timestamp == clock.now
        assert acc.pending == ()

    @pytest.mark.asyncio
    async def test_record_is_noop_when_closed(self, transport):
        acc = ChunkAccumulator("sess-1", transport)
        acc.record(_events(1)[0])
        assert acc.pending == ()

        acc.open()
        acc.record(_events(1)[0])
        acc.close()
        acc.record(_events(1)[0])
        assert len(acc.pending) == 1
        # closed accumulators still flush what they hold
        assert (await acc.flush_now()).events == list(_events(1))


class TestOrdering:
    @pytest.mark.asyncio
    async def test_chunks_reconstruct_stream(self, transport):
        acc = _accumulator(transport, event_limit=50)
        originals = _events(437)
        for i, event in enumerate(originals):
            acc.record(event)
            if i % 120 == 0:
                await acc.tick()
        await acc.drain()
        await acc.flush_now()

        indices = [c.chunk_index for c in transport.sent]
        assert indices == list(range(len(indices)))
        assert transport.events() == originals
        assert all(c.events for c in transport.sent)

    @pytest.mark.asyncio
    async def test_events_during_inflight_flush_land_in_next_chunk(self, transport):
        transport.gate = asyncio.Event()
        acc = _accumulator(transport, event_limit=5)
        first, second = _events(5), _events(3, start=100)

        for event in first:
            acc.record(event)
        await asyncio.sleep(0)          # upload started, blocked on the gate
        for event in second:
            acc.record(event)
        assert acc.pending == tuple(second)

        flush = asyncio.ensure_future(acc.flush_now())
        await asyncio.sleep(0)
        transport.gate.set()
        await acc.drain()
        await flush

        assert [c.chunk_index for c in transport.sent] == [0, 1]
        assert transport.sent[0].events == first
        assert transport.sent[1].events == second


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_chunk_is_reported_and_not_requeued(self):
        transport = FakeTransport(fail_calls={1})
        reported = []
        acc = _accumulator(transport, on_error=lambda exc, chunk: reported.append((exc, chunk)))

        lost = _events(2)
        for event in lost:
            acc.record(event)
        assert await acc.flush_now() is None

        assert len(reported) == 1
        exc, chunk = reported[0]
        assert isinstance(exc, TransportError)
        assert exc.kind == "network"
        assert chunk.events == lost
        assert acc.pending == ()
        assert acc.failed_chunks == 1

        # index was not consumed, so the next chunk fills it
        kept = _events(1, start=50)
        acc.record(kept[0])
        chunk = await acc.flush_now()
        assert chunk.chunk_index == 0
        assert acc.next_chunk_index == 1

    @pytest.mark.asyncio
    async def test_index_past_key_width_is_reported(self, transport):
        reported = []
        acc = _accumulator(
            transport,
            event_limit=2,
            on_error=lambda exc, chunk: reported.append((exc, chunk)),
            first_chunk_index=MAX_CHUNK_INDEX + 1,
        )

        overflow = _events(2)
        for event in overflow:
            acc.record(event)
        await acc.drain()

        assert transport.calls == 0
        assert acc.failed_chunks == 1
        exc, chunk = reported[0]
        assert isinstance(exc, InvalidChunkError)
        assert exc.kind == "invalid"
        assert chunk.chunk_index == MAX_CHUNK_INDEX + 1
        assert chunk.events == overflow
