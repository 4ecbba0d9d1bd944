"""
In-memory session registry and the process's chunk store.

Sessions live in a plain dict keyed by session link — no DB needed.
Chunks go to a FileChunkStore under CHUNK_STORE_DIR, or stay in memory when
that variable is unset.
"""

import os
import uuid
from typing import Optional

from models.session import InterviewSession
from storage.blob import ChunkStore, FileChunkStore, MemoryChunkStore

sessions: dict[str, InterviewSession] = {}

_chunk_store: Optional[ChunkStore] = None


def get_chunk_store() -> ChunkStore:
    global _chunk_store
    if _chunk_store is None:
        root = os.environ.get("CHUNK_STORE_DIR")
        _chunk_store = FileChunkStore(root) if root else MemoryChunkStore()
    return _chunk_store


def set_chunk_store(chunk_store: Optional[ChunkStore]) -> None:
    global _chunk_store
    _chunk_store = chunk_store


def create_session(interviewee_name: Optional[str] = None) -> InterviewSession:
    session = InterviewSession(
        id=str(uuid.uuid4()),
        session_link=uuid.uuid4().hex,
        interviewee_name=interviewee_name,
    )
    sessions[session.session_link] = session
    return session
