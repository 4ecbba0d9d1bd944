import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, ConfigDict, Field

import store
from analysis.summary import generate_llm_summary
from models.chunk import RecordingChunk
from models.session import SessionStatus
from storage.blob import ChunkStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recording", tags=["recording"])


# ---------- Request / Response schemas ----------

class ChunkUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    blob_url: str = Field(alias="blobUrl")
    chunk_index: int = Field(alias="chunkIndex")


class EndRecordingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")


class EndRecordingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session_id: str = Field(alias="sessionId")
    status: SessionStatus


# ---------- Endpoints ----------

@router.post("/chunk", response_model=ChunkUploadResponse)
async def upload_chunk(chunk: RecordingChunk):
    """
    Stores one recording chunk under its deterministic key.
    Malformed payloads are rejected by validation before anything is written.
    The first chunk moves a pending session to in-progress.
    """
    session = store.sessions.get(chunk.session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    try:
        stored = await store.get_chunk_store().put_chunk(chunk)
    except ChunkStoreError:
        logger.exception("Error storing chunk %d for %s", chunk.chunk_index, chunk.session_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info("Uploaded chunk %d for session %s: %s", chunk.chunk_index, chunk.session_id, stored.url)

    if chunk.chunk_index == 0 and session.status is SessionStatus.PENDING:
        session.status = SessionStatus.IN_PROGRESS
        session.start_time = datetime.now(timezone.utc)

    return ChunkUploadResponse(blob_url=stored.url, chunk_index=chunk.chunk_index)


@router.post("/end", response_model=EndRecordingResponse)
async def end_recording(body: EndRecordingRequest, background_tasks: BackgroundTasks):
    """
    Marks the session completed and schedules report generation.
    The response does not wait for the analysis.
    """
    if not body.session_id or body.end_time is None:
        raise HTTPException(status_code=400, detail="Session ID and end time are required")

    session = store.sessions.get(body.session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    session.status = SessionStatus.COMPLETED
    session.end_time = body.end_time

    background_tasks.add_task(generate_llm_summary, session.session_link)

    return EndRecordingResponse(session_id=session.session_link, status=session.status)


@router.get("/{session_id}/chunks", response_model=list[RecordingChunk])
async def list_chunks(session_id: str):
    """Returns the session's stored chunks in chunk-index order."""
    if session_id not in store.sessions:
        raise HTTPException(status_code=404, detail="Session not found")

    chunk_store = store.get_chunk_store()
    try:
        return [
            await chunk_store.read_chunk(item.pathname)
            for item in await chunk_store.list_chunks(session_id)
        ]
    except ChunkStoreError:
        logger.exception("Error listing chunks for %s", session_id)
        raise HTTPException(status_code=500, detail="Internal server error")
