"""
End-of-session report generation.

Called as a background task once a session ends:
  1. list the session's stored chunks (sorted by key == chunk order)
  2. read and concatenate their events
  3. run BehaviorAnalyzer
  4. ask Gemini for a report, or build the template report if that fails
  5. store the statistics and report on the session

Any unreadable chunk skips the analysis for that session; nothing is retried.
generate_llm_summary() never raises.
"""

import logging
from typing import Optional

import store
from analysis.behavior import BehaviorAnalyzer
from analysis.interpretation import build_template_report
from gemini.client import generate_report
from models.event import RecordingEvent
from models.summary import BehaviorSummary
from storage.blob import ChunkStore, ChunkStoreError

logger = logging.getLogger(__name__)


def build_report_prompt(summary: BehaviorSummary) -> str:
    files = "\n".join(f"- {f}" for f in summary.files_opened) or "- (none)"
    return f"""
Analyze this technical interview recording data and provide a concise summary. Look specifically for signs of AI-assisted coding patterns:

RECORDING ANALYSIS:
- Total events: {summary.total_events}
- Recording duration: {summary.duration_minutes} minutes
- Files opened: {len(summary.files_opened)}
- Text edits: {summary.text_edit_count}
- Tab switches: {summary.tab_switch_count}
- Rapid text insertions: {summary.rapid_insertion_count}
- Copy-paste patterns: {summary.copy_paste_pattern_count}
- High-frequency edit bursts: {summary.high_frequency_edit_burst_count}

FILES WORKED ON:
{files}

POTENTIAL AI-ASSISTANCE INDICATORS:
- Large text insertions ({summary.rapid_insertion_count} detected)
- Frequent context switching between files ({summary.tab_switch_count} tab changes)
- High-frequency text modifications ({summary.high_frequency_edit_burst_count} bursts)
- Copy-paste patterns detected: {summary.copy_paste_pattern_count}
""".strip()


async def load_session_events(chunk_store: ChunkStore, session_link: str) -> Optional[list[RecordingEvent]]:
    """All events in chunk order, or None when there is nothing usable to analyze."""
    try:
        events = await chunk_store.load_events(session_link)
    except ChunkStoreError as exc:
        logger.error("Skipping analysis for %s: %s", session_link, exc)
        return None
    if not events:
        logger.info("No recording events found for session %s", session_link)
        return None
    return events


async def generate_llm_summary(session_link: str, analyzer: Optional[BehaviorAnalyzer] = None) -> Optional[str]:
    logger.info("Generating LLM summary for session %s", session_link)
    session = store.sessions.get(session_link)
    if session is None:
        logger.warning("Cannot summarize unknown session %s", session_link)
        return None

    try:
        events = await load_session_events(store.get_chunk_store(), session_link)
        if events is None:
            return None

        behavior = (analyzer or BehaviorAnalyzer()).analyze(events)
        report = await generate_report(build_report_prompt(behavior))
        if report is None:
            report = build_template_report(behavior)

        session.behavior = behavior
        session.llm_summary = report
        logger.info("LLM summary generated for session %s", session_link)
        return report

    except Exception:
        logger.exception("Error generating LLM summary for %s", session_link)
        return None
