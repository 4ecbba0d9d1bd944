"""
Remote chunk store.

Chunks are stored as JSON objects under a deterministic key:

  {scope}/recordings/{session_id}/chunk-{index:04d}.json

The same (session_id, chunk_index) pair always resolves to the same key, so a
retried upload overwrites the earlier copy instead of adding a duplicate.
Listing returns keys sorted lexicographically, which equals chunk order
because of the zero padding.

Two implementations:
  - FileChunkStore   — one file per chunk under a root directory; writes go
                       through a temp file + os.replace so a failed write
                       never leaves a partial chunk behind.
  - MemoryChunkStore — dict-backed, for tests and single-process runs.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from models.chunk import CHUNK_INDEX_WIDTH, MAX_CHUNK_INDEX, RecordingChunk
from models.event import RecordingEvent

logger = logging.getLogger(__name__)


class ChunkStoreError(Exception):
    """Raised when a chunk cannot be written, listed or read."""


class StoredChunk(BaseModel):
    pathname: str
    url: str


# ---------- Key helpers ----------

def deployment_scope() -> str:
    deployment = os.environ.get("DEPLOYMENT", "local")
    return "prod" if deployment == "production" else "dev"


def session_prefix(session_id: str, scope: Optional[str] = None) -> str:
    return f"{scope or deployment_scope()}/recordings/{session_id}/"


def chunk_key(session_id: str, chunk_index: int, scope: Optional[str] = None) -> str:
    if not 0 <= chunk_index <= MAX_CHUNK_INDEX:
        raise ValueError(f"chunk index {chunk_index} out of range")
    if not session_id or "/" in session_id:
        raise ValueError(f"invalid session id {session_id!r}")
    padded = str(chunk_index).zfill(CHUNK_INDEX_WIDTH)
    return f"{session_prefix(session_id, scope)}chunk-{padded}.json"


# ---------- Store interface ----------

class ChunkStore(ABC):
    def __init__(self, scope: Optional[str] = None):
        self.scope = scope or deployment_scope()

    @abstractmethod
    async def put_chunk(self, chunk: RecordingChunk) -> StoredChunk:
        """Store a chunk, overwriting any earlier copy with the same index."""

    @abstractmethod
    async def list_chunks(self, session_id: str) -> list[StoredChunk]:
        """Stored chunks for a session, sorted by pathname."""

    @abstractmethod
    async def read_chunk(self, pathname: str) -> RecordingChunk:
        ...

    @abstractmethod
    async def delete_chunks(self, session_id: str) -> int:
        ...

    async def load_events(self, session_id: str) -> list[RecordingEvent]:
        """Concatenate every stored chunk's events in chunk order."""
        events: list[RecordingEvent] = []
        for stored in await self.list_chunks(session_id):
            chunk = await self.read_chunk(stored.pathname)
            events.extend(chunk.events)
        return events

    def _key(self, chunk: RecordingChunk) -> str:
        try:
            return chunk_key(chunk.session_id, chunk.chunk_index, self.scope)
        except ValueError as exc:
            raise ChunkStoreError(str(exc)) from exc


def _parse_chunk(pathname: str, raw: str) -> RecordingChunk:
    try:
        return RecordingChunk.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ChunkStoreError(f"malformed chunk {pathname}: {exc}") from exc


# ---------- In-memory ----------

class MemoryChunkStore(ChunkStore):
    def __init__(self, scope: Optional[str] = None):
        super().__init__(scope)
        self._objects: dict[str, str] = {}

    async def put_chunk(self, chunk: RecordingChunk) -> StoredChunk:
        key = self._key(chunk)
        self._objects[key] = json.dumps(chunk.to_wire())
        return StoredChunk(pathname=key, url=f"memory://{key}")

    async def list_chunks(self, session_id: str) -> list[StoredChunk]:
        prefix = session_prefix(session_id, self.scope)
        return [
            StoredChunk(pathname=key, url=f"memory://{key}")
            for key in sorted(self._objects)
            if key.startswith(prefix)
        ]

    async def read_chunk(self, pathname: str) -> RecordingChunk:
        try:
            raw = self._objects[pathname]
        except KeyError:
            raise ChunkStoreError(f"chunk not found: {pathname}") from None
        return _parse_chunk(pathname, raw)

    async def delete_chunks(self, session_id: str) -> int:
        prefix = session_prefix(session_id, self.scope)
        doomed = [key for key in self._objects if key.startswith(prefix)]
        for key in doomed:
            del self._objects[key]
        return len(doomed)


# ---------- Filesystem ----------

class FileChunkStore(ChunkStore):
    """File I/O runs in a worker thread so the event loop is never blocked."""

    def __init__(self, root: str, scope: Optional[str] = None):
        super().__init__(scope)
        self.root = Path(root).expanduser().resolve()

    def _path(self, pathname: str) -> Path:
        path = (self.root / pathname).resolve()
        if self.root not in path.parents:
            raise ChunkStoreError(f"path escapes store root: {pathname}")
        return path

    def _write(self, key: str, payload: str) -> Path:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".chunk-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return path

    async def put_chunk(self, chunk: RecordingChunk) -> StoredChunk:
        key = self._key(chunk)
        try:
            path = await asyncio.to_thread(self._write, key, json.dumps(chunk.to_wire()))
        except OSError as exc:
            raise ChunkStoreError(f"failed to write {key}: {exc}") from exc
        logger.debug("Stored %s", key)
        return StoredChunk(pathname=key, url=path.as_uri())

    def _list(self, session_id: str) -> list[StoredChunk]:
        prefix = session_prefix(session_id, self.scope)
        directory = self._path(prefix)
        if not directory.is_dir():
            return []
        return [
            StoredChunk(pathname=prefix + path.name, url=path.as_uri())
            for path in sorted(directory.glob("chunk-*.json"), key=lambda p: p.name)
        ]

    async def list_chunks(self, session_id: str) -> list[StoredChunk]:
        try:
            return await asyncio.to_thread(self._list, session_id)
        except OSError as exc:
            raise ChunkStoreError(f"failed to list chunks for {session_id}: {exc}") from exc

    async def read_chunk(self, pathname: str) -> RecordingChunk:
        path = self._path(pathname)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise ChunkStoreError(f"chunk not found: {pathname}") from None
        except OSError as exc:
            raise ChunkStoreError(f"failed to read {pathname}: {exc}") from exc
        return _parse_chunk(pathname, raw)

    async def delete_chunks(self, session_id: str) -> int:
        stored = await self.list_chunks(session_id)
        for item in stored:
            await asyncio.to_thread(self._path(item.pathname).unlink, missing_ok=True)
        return len(stored)
