from models.event import EventType, RecordingEvent
from models.chunk import RecordingChunk
from models.session import InterviewSession, SessionStatus
from models.summary import BehaviorSummary

__all__ = [
    "EventType",
    "RecordingEvent",
    "RecordingChunk",
    "InterviewSession",
    "SessionStatus",
    "BehaviorSummary",
]
