"""
Editor notification -> RecordingEvent.

The editor integration hands us plain mappings shaped like

  {"type": "textEdit", "timestamp": 1700000000000,
   "data": {"fileName": "...", "filePath": "...", "text": "...", "line": 3, "character": 0}}

Categories are mapped to numeric codes through a fixed table; anything not in
the table gets EventType.UNKNOWN. Malformed notifications are logged and
dropped. Nothing here raises: capture must never take down the editor session.
"""

import logging
import time
from typing import Any, Mapping, Optional

from models.event import EventType, RecordingEvent

logger = logging.getLogger(__name__)

EVENT_TYPE_TABLE: dict[str, EventType] = {
    "fileOpen": EventType.FILE_OPEN,
    "fileEdit": EventType.FILE_EDIT,
    "fileSave": EventType.FILE_SAVE,
    "tabChange": EventType.TAB_CHANGE,
    "textEdit": EventType.TEXT_EDIT,
    # snake_case spellings used by some integrations
    "file_open": EventType.FILE_OPEN,
    "file_edit": EventType.FILE_EDIT,
    "file_save": EventType.FILE_SAVE,
    "tab_change": EventType.TAB_CHANGE,
    "text_edit": EventType.TEXT_EDIT,
}

_STRING_FIELDS = ("fileName", "filePath", "text", "content")
_INT_FIELDS = ("line", "character")


def now_ms() -> int:
    return int(time.time() * 1000)


def event_type_for(category: str) -> EventType:
    return EVENT_TYPE_TABLE.get(category, EventType.UNKNOWN)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _payload_problem(data: Mapping) -> Optional[str]:
    for key in _STRING_FIELDS:
        if key in data and data[key] is not None and not isinstance(data[key], str):
            return f"{key} must be a string"
    for key in _INT_FIELDS:
        if key in data and data[key] is not None and not _is_int(data[key]):
            return f"{key} must be an integer"
    return None


def normalize_event(raw: Any) -> Optional[RecordingEvent]:
    """Return a RecordingEvent, or None when the notification is malformed."""
    if not isinstance(raw, Mapping):
        logger.warning("Dropping editor event: expected a mapping, got %s", type(raw).__name__)
        return None

    category = raw.get("type")
    if not isinstance(category, str) or not category.strip():
        logger.warning("Dropping editor event without a category: %r", category)
        return None

    timestamp = raw.get("timestamp")
    if not _is_int(timestamp) or timestamp < 0:
        logger.warning("Dropping %s event with bad timestamp: %r", category, timestamp)
        return None

    data = raw.get("data") or {}
    if not isinstance(data, Mapping):
        logger.warning("Dropping %s event: data is not a mapping", category)
        return None

    problem = _payload_problem(data)
    if problem:
        logger.warning("Dropping %s event: %s", category, problem)
        return None

    return RecordingEvent(
        type=int(event_type_for(category)),
        timestamp=timestamp,
        data={str(k): v for k, v in data.items()},
    )


# ---------- Notification builders for editor integrations ----------

def _notification(category: str, timestamp: Optional[int], **data) -> dict:
    return {
        "type": category,
        "timestamp": now_ms() if timestamp is None else timestamp,
        "data": {k: v for k, v in data.items() if v is not None},
    }


def file_open(file_name: str, file_path: Optional[str] = None, timestamp: Optional[int] = None) -> dict:
    return _notification("fileOpen", timestamp, fileName=file_name, filePath=file_path)


def file_save(file_name: str, file_path: Optional[str] = None, timestamp: Optional[int] = None) -> dict:
    return _notification("fileSave", timestamp, fileName=file_name, filePath=file_path)


def tab_change(file_name: str, file_path: Optional[str] = None, timestamp: Optional[int] = None) -> dict:
    return _notification("tabChange", timestamp, fileName=file_name, filePath=file_path)


def text_edit(
    file_name: str,
    text: str,
    line: int = 0,
    character: int = 0,
    file_path: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> dict:
    return _notification(
        "textEdit", timestamp,
        fileName=file_name, filePath=file_path, text=text, line=line, character=character,
    )
