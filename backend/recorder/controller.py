"""
Recording session lifecycle.

RecordingSession is the per-session state machine:

    IDLE --start()--> RECORDING --stop() / deadline--> STOPPED

Editor integrations feed it through plain function handles (on_text_edit,
on_file_open, ... or on_notification for raw mappings), or through event
sources that accept a callback and return an unsubscribe handle.

Stopping runs five steps, each attempted even when an earlier one fails:
  1. unsubscribe every event source
  2. cancel the periodic tick
  3. close the accumulator and flush what is left
  4. send the end-of-session notification (exactly once)
  5. release the UI handle
Steps 1-2 happen synchronously so no event or tick slips in once a stop
begins. The recording deadline is checked on every captured event and on
every tick; crossing it forces the same stop sequence.

SessionRegistry owns every live RecordingSession, keyed by session id.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol

from models.chunk import RecordingChunk
from models.event import RecordingEvent
from recorder import normalizer
from recorder.accumulator import ChunkAccumulator
from recorder.config import RecorderConfig
from recorder.scheduler import PeriodicTask
from recorder.transport import ChunkTransport, TransportError

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[Mapping[str, Any]], None]
Unsubscribe = Callable[[], None]


class EventSource(Protocol):
    def subscribe(self, handler: NotificationHandler) -> Unsubscribe:
        ...


class Disposable(Protocol):
    def dispose(self) -> None:
        ...


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class StartResult(str, Enum):
    STARTED = "started"
    BUSY = "busy"


class StopReason(str, Enum):
    USER = "user"
    TIMEOUT = "timeout"
    SHUTDOWN = "shutdown"


def _utc_from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


class RecordingSession:
    def __init__(
        self,
        session_id: str,
        transport: ChunkTransport,
        config: Optional[RecorderConfig] = None,
        *,
        sources: Iterable[EventSource] = (),
        ui: Optional[Disposable] = None,
        clock: Callable[[], int] = normalizer.now_ms,
        on_stopped: Optional[Callable[["RecordingSession"], None]] = None,
        first_chunk_index: int = 0,
    ):
        self.session_id = session_id
        self.transport = transport
        self.config = config or RecorderConfig()
        self.state = RecorderState.IDLE
        self.started_at: Optional[int] = None
        self.stop_reason: Optional[StopReason] = None
        self.errors: list[TransportError] = []
        self.dropped_events = 0

        self._sources = list(sources)
        self._ui = ui
        self._clock = clock
        self._on_stopped = on_stopped
        self._unsubscribers: list[Unsubscribe] = []
        self._last_timestamp = 0
        self._stopping = False
        self._end_notified = False
        self._stop_task: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

        self.accumulator = ChunkAccumulator(
            session_id,
            transport,
            event_limit=self.config.chunk_event_limit,
            clock=clock,
            on_error=self._on_transport_error,
            first_chunk_index=first_chunk_index,
        )
        self._ticker: Optional[PeriodicTask] = None
        if self.config.chunk_interval is not None:
            self._ticker = PeriodicTask(
                self.config.chunk_interval, self.tick, name=f"chunk-tick-{session_id}"
            )

    # ---------- State ----------

    @property
    def is_recording(self) -> bool:
        return self.state is RecorderState.RECORDING and not self._stopping

    @property
    def failed_chunks(self) -> int:
        return self.accumulator.failed_chunks

    def deadline_exceeded(self, now: Optional[int] = None) -> bool:
        if self.started_at is None:
            return False
        now = self._clock() if now is None else now
        return now - self.started_at > self.config.max_recording_time_ms

    # ---------- Start ----------

    def start(self) -> StartResult:
        if self.state is not RecorderState.IDLE:
            logger.warning("Recording %s already %s", self.session_id, self.state.value)
            return StartResult.BUSY

        self.started_at = self._clock()
        self.state = RecorderState.RECORDING
        self.accumulator.open()
        for source in self._sources:
            self._unsubscribers.append(source.subscribe(self.on_notification))
        if self._ticker is not None:
            self._ticker.start()

        logger.info("Interview recording started for %s", self.session_id)
        return StartResult.STARTED

    # ---------- Capture ----------

    def on_notification(self, raw: Mapping[str, Any]) -> None:
        """Entry point for raw editor notifications."""
        if not self.is_recording:
            return
        event = normalizer.normalize_event(raw)
        if event is None:
            self.dropped_events += 1
            return
        self.capture(event)

    def on_file_open(self, file_name: str, file_path: Optional[str] = None) -> None:
        self.on_notification(normalizer.file_open(file_name, file_path, self._clock()))

    def on_file_save(self, file_name: str, file_path: Optional[str] = None) -> None:
        self.on_notification(normalizer.file_save(file_name, file_path, self._clock()))

    def on_tab_change(self, file_name: str, file_path: Optional[str] = None) -> None:
        self.on_notification(normalizer.tab_change(file_name, file_path, self._clock()))

    def on_text_edit(
        self,
        file_name: str,
        text: str,
        line: int = 0,
        character: int = 0,
        file_path: Optional[str] = None,
    ) -> None:
        self.on_notification(
            normalizer.text_edit(file_name, text, line, character, file_path, self._clock())
        )

    def capture(self, event: RecordingEvent) -> None:
        if not self.is_recording:
            return
        if self.deadline_exceeded():
            logger.warning(
                "Maximum recording time (%d min) reached for %s. Recording stopped.",
                self.config.max_recording_time_ms // 60000, self.session_id,
            )
            self._force_stop(StopReason.TIMEOUT)
            return

        if event.timestamp < self._last_timestamp:
            event = event.model_copy(update={"timestamp": self._last_timestamp})
        self._last_timestamp = event.timestamp
        self.accumulator.record(event)

    async def tick(self) -> Optional[RecordingChunk]:
        if not self.is_recording:
            return None
        if self.deadline_exceeded():
            logger.warning("Maximum recording time reached for %s on tick", self.session_id)
            await self.stop(StopReason.TIMEOUT)
            return None
        return await self.accumulator.tick()

    # ---------- Stop ----------

    async def stop(self, reason: StopReason = StopReason.USER) -> bool:
        """Run the stop sequence. Returns False when not recording."""
        if not self.is_recording:
            if self._stop_task is not None:
                await asyncio.shield(self._stop_task)
            return False
        self._halt_capture(reason)
        await self._finish_stop()
        return True

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    def _force_stop(self, reason: StopReason) -> None:
        if not self.is_recording:
            return
        self._halt_capture(reason)
        self._stop_task = asyncio.get_running_loop().create_task(self._finish_stop())

    def _halt_capture(self, reason: StopReason) -> None:
        self._stopping = True
        self.stop_reason = reason
        self.accumulator.close()

        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception:
                logger.exception("Failed to unsubscribe event source for %s", self.session_id)
        self._unsubscribers = []

        if self._ticker is not None:
            try:
                self._ticker.cancel()
            except Exception:
                logger.exception("Failed to cancel chunk timer for %s", self.session_id)

    async def _finish_stop(self) -> None:
        try:
            await self.accumulator.drain()
            await self.accumulator.flush_now()
        except Exception:
            logger.exception("Final flush failed for %s", self.session_id)

        if not self._end_notified:
            self._end_notified = True
            try:
                await self.transport.notify_end(self.session_id, _utc_from_ms(self._clock()))
            except Exception:
                logger.exception("Failed to notify recording end for %s", self.session_id)

        if self._ui is not None:
            try:
                self._ui.dispose()
            except Exception:
                logger.exception("Failed to release recording UI for %s", self.session_id)
            self._ui = None

        self.state = RecorderState.STOPPED
        self._stopped.set()
        logger.info(
            "Interview recording stopped for %s (%s): %d chunks sent, %d lost",
            self.session_id, self.stop_reason.value if self.stop_reason else "-",
            self.accumulator.sent_chunks, self.accumulator.failed_chunks,
        )
        if self._on_stopped is not None:
            self._on_stopped(self)

    def _on_transport_error(self, exc: TransportError, chunk: RecordingChunk) -> None:
        self.errors.append(exc)
        logger.warning(
            "Failed to upload recording data for %s (chunk %d, %d events)",
            self.session_id, chunk.chunk_index, len(chunk.events),
        )


class SessionRegistry:
    """
    Live recording sessions keyed by session id.

    Construct one at startup and call shutdown() on exit; sessions are
    dropped from the registry as soon as they stop, forced stops included.
    Recording the same session id again continues its chunk numbering, so
    earlier chunks are never overwritten.
    """

    def __init__(
        self,
        transport: ChunkTransport,
        config: Optional[RecorderConfig] = None,
        *,
        clock: Callable[[], int] = normalizer.now_ms,
    ):
        self.transport = transport
        self.config = config or RecorderConfig()
        self._clock = clock
        self._sessions: dict[str, RecordingSession] = {}
        self._next_index: dict[str, int] = {}

    def get(self, session_id: str) -> Optional[RecordingSession]:
        return self._sessions.get(session_id)

    def active_sessions(self) -> list[str]:
        return [sid for sid, s in self._sessions.items() if s.is_recording]

    def start(
        self,
        session_id: str,
        *,
        sources: Iterable[EventSource] = (),
        ui: Optional[Disposable] = None,
    ) -> StartResult:
        if session_id in self._sessions:
            logger.warning("Recording is already in progress for %s", session_id)
            return StartResult.BUSY

        session = RecordingSession(
            session_id,
            self.transport,
            self.config,
            sources=sources,
            ui=ui,
            clock=self._clock,
            on_stopped=self._forget,
            first_chunk_index=self._next_index.get(session_id, 0),
        )
        result = session.start()
        if result is StartResult.STARTED:
            self._sessions[session_id] = session
        return result

    async def stop(self, session_id: str, reason: StopReason = StopReason.USER) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("No recording in progress for %s", session_id)
            return False
        return await session.stop(reason)

    async def shutdown(self) -> None:
        for session in list(self._sessions.values()):
            await session.stop(StopReason.SHUTDOWN)
            await session.wait_stopped()
        self._sessions.clear()

    def _forget(self, session: RecordingSession) -> None:
        self._next_index[session.session_id] = session.accumulator.next_chunk_index
        if self._sessions.get(session.session_id) is session:
            del self._sessions[session.session_id]
