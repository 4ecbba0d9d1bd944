from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, ConfigDict, Field

import store
from models.session import SessionStatus
from models.summary import BehaviorSummary

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


# ---------- Request / Response schemas ----------

class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    interviewee_name: Optional[str] = Field(default=None, alias="intervieweeName")


class SessionView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    status: SessionStatus
    interviewee_name: Optional[str] = Field(default=None, alias="intervieweeName")
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    behavior: Optional[BehaviorSummary] = None
    summary: Optional[str] = None


def _view(session) -> SessionView:
    return SessionView(
        session_id=session.session_link,
        status=session.status,
        interviewee_name=session.interviewee_name,
        start_time=session.start_time,
        end_time=session.end_time,
        behavior=session.behavior,
        summary=session.llm_summary,
    )


# ---------- Endpoints ----------

@router.post("", response_model=SessionView, status_code=201)
async def create_session(body: Optional[CreateSessionRequest] = Body(default=None)):
    """
    Creates a pending session.
    The returned sessionId is the link token the recorder sends with every chunk.
    """
    session = store.create_session(body.interviewee_name if body else None)
    return _view(session)


@router.get("/{session_id}", response_model=SessionView)
async def get_session(session_id: str):
    session = store.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _view(session)
