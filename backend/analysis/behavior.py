"""
Behavior analysis over one completed session's event stream.

Single forward pass over events in capture order:

  duration_minutes
      (last timestamp - first timestamp) in minutes, rounded half up.
      0 when the session has fewer than two events.

  high_frequency_edit_burst_count
      Text edits arriving less than `rapid_edit_ms` after the previous edit
      extend the current run; a slower edit starts a new run. When a run
      reaches `burst_length` edits one burst is counted and the run is
      consumed, so bursts never overlap.

  rapid_insertion_count / copy_paste_pattern_count
      Edits inserting more than `large_insertion_chars` characters count as
      rapid insertions; those that also look like code count as copy-paste
      patterns.

  files_opened / tab_switch_count / text_edit_count
      Plain tallies by event type.
"""

import math
from typing import Iterable, Optional

from analysis.patterns import looks_like_code
from models.event import EventType, RecordingEvent
from models.summary import BehaviorSummary

RAPID_EDIT_THRESHOLD_MS = 100
HIGH_FREQUENCY_THRESHOLD = 5
LARGE_INSERTION_CHARS = 100


def _minutes(elapsed_ms: int) -> int:
    return int(math.floor(elapsed_ms / 60000 + 0.5))


def _file_id(data: dict) -> Optional[str]:
    name = data.get("fileName") or data.get("filePath")
    return name if isinstance(name, str) and name else None


class BehaviorAnalyzer:
    def __init__(
        self,
        rapid_edit_ms: int = RAPID_EDIT_THRESHOLD_MS,
        burst_length: int = HIGH_FREQUENCY_THRESHOLD,
        large_insertion_chars: int = LARGE_INSERTION_CHARS,
    ):
        if burst_length < 1:
            raise ValueError("burst_length must be at least 1")
        self.rapid_edit_ms = rapid_edit_ms
        self.burst_length = burst_length
        self.large_insertion_chars = large_insertion_chars

    def analyze(self, events: Iterable[RecordingEvent]) -> BehaviorSummary:
        total = 0
        first_ts: Optional[int] = None
        last_ts: Optional[int] = None

        files: dict[str, None] = {}     # insertion-ordered set
        text_edits = 0
        tab_switches = 0
        rapid_insertions = 0
        copy_paste = 0
        bursts = 0

        last_edit_ts: Optional[int] = None
        run = 0

        for event in events:
            total += 1
            if first_ts is None:
                first_ts = event.timestamp
            last_ts = event.timestamp

            if event.type == EventType.FILE_OPEN:
                file_id = _file_id(event.data)
                if file_id:
                    files[file_id] = None

            elif event.type == EventType.TAB_CHANGE:
                tab_switches += 1

            elif event.type == EventType.TEXT_EDIT:
                text_edits += 1

                if last_edit_ts is not None and event.timestamp - last_edit_ts < self.rapid_edit_ms:
                    run += 1
                else:
                    run = 1
                if run >= self.burst_length:
                    bursts += 1
                    run = 0
                last_edit_ts = event.timestamp

                text = event.data.get("text")
                if isinstance(text, str) and len(text) > self.large_insertion_chars:
                    rapid_insertions += 1
                    if looks_like_code(text):
                        copy_paste += 1

        duration = 0
        if total >= 2 and first_ts is not None and last_ts is not None:
            duration = _minutes(last_ts - first_ts)

        return BehaviorSummary(
            total_events=total,
            duration_minutes=duration,
            files_opened=list(files),
            text_edit_count=text_edits,
            tab_switch_count=tab_switches,
            rapid_insertion_count=rapid_insertions,
            copy_paste_pattern_count=copy_paste,
            high_frequency_edit_burst_count=bursts,
        )


def analyze_events(events: Iterable[RecordingEvent]) -> BehaviorSummary:
    return BehaviorAnalyzer().analyze(events)
