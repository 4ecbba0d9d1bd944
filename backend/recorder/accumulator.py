"""
ChunkAccumulator — buffers one session's events and decides when to flush.

Two triggers share one flush routine:
  - count: record() hits `event_limit` and schedules a flush
  - time:  tick() is awaited by the session's periodic task

Every upload runs in its own task. Cancelling whoever awaits a flush (the
periodic task, when a stop cancels it) does not abort the upload; drain()
waits for all of them.

The buffer is swapped for a fresh list synchronously, before the first await,
so events recorded while an upload is in flight land in the next chunk.
Uploads run one at a time in swap order: each flush waits for the one swapped
before it. A chunk takes `next_chunk_index` when its upload starts and the
index only advances after the transport accepts it. A failed chunk, or one
that fails validation, is reported through `on_error` and not re-queued.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from models.chunk import RecordingChunk
from models.event import RecordingEvent
from recorder.config import CHUNK_EVENT_LIMIT
from recorder.normalizer import now_ms
from recorder.transport import ChunkTransport, InvalidChunkError, TransportError

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[TransportError, RecordingChunk], None]


class ChunkAccumulator:
    def __init__(
        self,
        session_id: str,
        transport: ChunkTransport,
        *,
        event_limit: int = CHUNK_EVENT_LIMIT,
        clock: Callable[[], int] = now_ms,
        on_error: Optional[ErrorCallback] = None,
        first_chunk_index: int = 0,
    ):
        self.session_id = session_id
        self.transport = transport
        self.event_limit = event_limit
        self.next_chunk_index = first_chunk_index
        self.sent_chunks = 0
        self.failed_chunks = 0
        self._clock = clock
        self._on_error = on_error
        self._pending: list[RecordingEvent] = []
        self._open = False
        self._last_turn: Optional[asyncio.Future] = None
        self._inflight: set[asyncio.Task] = set()

    # ---------- Lifecycle ----------

    @property
    def is_recording(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        """Stop accepting events. Pending events stay until flush_now()."""
        self._open = False

    @property
    def pending(self) -> tuple[RecordingEvent, ...]:
        return tuple(self._pending)

    # ---------- Triggers ----------

    def record(self, event: RecordingEvent) -> None:
        if not self._open:
            return
        self._pending.append(event)
        if len(self._pending) >= self.event_limit:
            self._spawn(self._begin_flush())

    async def tick(self) -> Optional[RecordingChunk]:
        return await self.flush_now()

    async def flush_now(self) -> Optional[RecordingChunk]:
        upload = self._begin_flush()
        if upload is None:
            return None
        return await asyncio.shield(self._spawn(upload))

    async def drain(self) -> None:
        """Wait for every upload that is still in flight."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ---------- Internals ----------

    def _spawn(self, upload: Awaitable[Optional[RecordingChunk]]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(upload)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _begin_flush(self) -> Optional[Awaitable[Optional[RecordingChunk]]]:
        batch, self._pending = self._pending, []
        if not batch:
            return None
        previous = self._last_turn
        turn = asyncio.get_running_loop().create_future()
        self._last_turn = turn
        return self._send(batch, previous, turn)

    async def _send(
        self,
        batch: list[RecordingEvent],
        previous: Optional[asyncio.Future],
        turn: asyncio.Future,
    ) -> Optional[RecordingChunk]:
        try:
            if previous is not None:
                await asyncio.shield(previous)
            return await self._deliver(batch)
        finally:
            if not turn.done():
                turn.set_result(None)

    async def _deliver(self, batch: list[RecordingEvent]) -> Optional[RecordingChunk]:
        fields = dict(
            session_id=self.session_id,
            chunk_index=self.next_chunk_index,
            events=batch,
            timestamp=self._clock(),
        )
        try:
            chunk = RecordingChunk(**fields)
        except ValidationError as exc:
            # unvalidated copy so the callback still sees the lost events
            self._report(InvalidChunkError(str(exc)), RecordingChunk.model_construct(**fields))
            return None

        try:
            url = await self.transport.send(self.session_id, chunk.chunk_index, chunk)
        except TransportError as exc:
            self._report(exc, chunk)
            return None

        self.next_chunk_index += 1
        self.sent_chunks += 1
        logger.info(
            "Sent chunk %d with %d events for %s -> %s",
            chunk.chunk_index, len(batch), self.session_id, url,
        )
        return chunk

    def _report(self, exc: TransportError, chunk: RecordingChunk) -> None:
        self.failed_chunks += 1
        logger.warning(
            "Chunk %d for %s lost (%s): %s",
            chunk.chunk_index, self.session_id, exc.kind, exc,
        )
        if self._on_error is not None:
            self._on_error(exc, chunk)
