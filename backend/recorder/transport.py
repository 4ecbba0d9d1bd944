"""
Chunk delivery.

A transport delivers a chunk keyed by (session_id, chunk_index). Delivering
the same pair twice overwrites the stored copy, so callers may retry safely.
Every failure surfaces as a TransportError subclass:

  TransportNetworkError   — timeouts, connection failures, 5xx
  TransportAuthError      — 401 / 403
  TransportNotFoundError  — 404 (unknown session)
  InvalidChunkError       — chunk failed validation before sending

Implementations:
  HttpChunkTransport   — posts to the backend's recording endpoints (httpx)
  StoreChunkTransport  — writes straight into a ChunkStore in-process
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Optional

import httpx

from models.chunk import RecordingChunk
from recorder.config import RecorderConfig
from storage.blob import ChunkStore, ChunkStoreError

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base class for chunk delivery failures."""

    kind = "transport"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportNetworkError(TransportError):
    kind = "network"


class TransportAuthError(TransportError):
    kind = "auth"


class TransportNotFoundError(TransportError):
    kind = "not-found"


class InvalidChunkError(TransportError):
    """The chunk could not be built, e.g. its index is past the key width."""

    kind = "invalid"


class ChunkTransport(ABC):
    @abstractmethod
    async def send(self, session_id: str, chunk_index: int, chunk: RecordingChunk) -> str:
        """Deliver a chunk and return the stored object's URL."""

    @abstractmethod
    async def list_chunks(self, session_id: str) -> list[RecordingChunk]:
        """All stored chunks for a session, ascending by chunk index."""

    @abstractmethod
    async def notify_end(self, session_id: str, end_time: datetime) -> None:
        ...

    async def aclose(self) -> None:
        pass


def _check_key(session_id: str, chunk_index: int, chunk: RecordingChunk) -> None:
    if chunk.session_id != session_id or chunk.chunk_index != chunk_index:
        raise ValueError(
            f"chunk {chunk.session_id}/{chunk.chunk_index} sent as {session_id}/{chunk_index}"
        )


# ---------- HTTP ----------

class HttpChunkTransport(ChunkTransport):
    """
    Posts chunks to the recording API.

    Maintains one httpx.AsyncClient for connection reuse. Usable as an async
    context manager or closed manually with aclose().
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    @classmethod
    def from_config(
        cls, config: RecorderConfig, *, client: Optional[httpx.AsyncClient] = None
    ) -> "HttpChunkTransport":
        return cls(config.server_url, timeout=config.upload_timeout, client=client)

    async def __aenter__(self) -> "HttpChunkTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportNetworkError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportNetworkError(f"{method} {path} failed: {exc}") from exc

        status = response.status_code
        if status in (401, 403):
            raise TransportAuthError(f"{method} {path} rejected ({status})", status)
        if status == 404:
            raise TransportNotFoundError(f"{method} {path}: not found", status)
        if status >= 500:
            raise TransportNetworkError(f"{method} {path}: server error ({status})", status)
        if status >= 400:
            raise TransportError(f"{method} {path}: request rejected ({status})", status)
        return response

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("response body is not JSON", response.status_code) from exc

    async def send(self, session_id: str, chunk_index: int, chunk: RecordingChunk) -> str:
        _check_key(session_id, chunk_index, chunk)
        response = await self._request("POST", "/api/recording/chunk", json=chunk.to_wire())
        body = self._json(response)
        return str(body.get("blobUrl", ""))

    async def list_chunks(self, session_id: str) -> list[RecordingChunk]:
        response = await self._request("GET", f"/api/recording/{session_id}/chunks")
        try:
            chunks = [RecordingChunk.model_validate(item) for item in self._json(response)]
        except (TypeError, ValueError) as exc:
            raise TransportError(f"malformed chunk listing for {session_id}") from exc
        return sorted(chunks, key=lambda c: c.chunk_index)

    async def notify_end(self, session_id: str, end_time: datetime) -> None:
        await self._request(
            "POST",
            "/api/recording/end",
            json={"sessionId": session_id, "endTime": end_time.isoformat()},
        )


# ---------- In-process ----------

class StoreChunkTransport(ChunkTransport):
    """Delivers into a ChunkStore directly; used when capture and storage share a process."""

    def __init__(
        self,
        store: ChunkStore,
        on_end: Optional[Callable[[str, datetime], Awaitable[None]]] = None,
    ):
        self.store = store
        self._on_end = on_end

    async def send(self, session_id: str, chunk_index: int, chunk: RecordingChunk) -> str:
        _check_key(session_id, chunk_index, chunk)
        try:
            stored = await self.store.put_chunk(chunk)
        except ChunkStoreError as exc:
            raise TransportError(str(exc)) from exc
        return stored.url

    async def list_chunks(self, session_id: str) -> list[RecordingChunk]:
        try:
            return [
                await self.store.read_chunk(stored.pathname)
                for stored in await self.store.list_chunks(session_id)
            ]
        except ChunkStoreError as exc:
            raise TransportError(str(exc)) from exc

    async def notify_end(self, session_id: str, end_time: datetime) -> None:
        if self._on_end is not None:
            await self._on_end(session_id, end_time)
