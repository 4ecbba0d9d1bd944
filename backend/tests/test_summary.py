from unittest.mock import AsyncMock, patch

import pytest

import store
from analysis.interpretation import build_template_report
from analysis.summary import build_report_prompt, generate_llm_summary
from models.chunk import RecordingChunk
from models.event import EventType, RecordingEvent
from models.summary import BehaviorSummary


def _summary(**overrides):
    values = dict(
        total_events=40,
        duration_minutes=12,
        files_opened=["a.py", "b.py"],
        text_edit_count=30,
        tab_switch_count=6,
        rapid_insertion_count=3,
        copy_paste_pattern_count=2,
        high_frequency_edit_burst_count=1,
    )
    values.update(overrides)
    return BehaviorSummary(**values)


async def _seed(session_link, chunks):
    chunk_store = store.get_chunk_store()
    for index, events in enumerate(chunks):
        await chunk_store.put_chunk(RecordingChunk(
            session_id=session_link, chunk_index=index, events=events, timestamp=0,
        ))


def _edit(ts, text="x"):
    return RecordingEvent(type=EventType.TEXT_EDIT, timestamp=ts, data={"text": text})


class TestGenerateLlmSummary:
    @pytest.mark.asyncio
    async def test_uses_model_report(self):
        session = store.create_session()
        await _seed(session.session_link, [[_edit(0)], [_edit(60000)]])

        with patch("analysis.summary.generate_report", new=AsyncMock(return_value="- model report")) as gen:
            report = await generate_llm_summary(session.session_link)

        assert report == "- model report"
        assert session.llm_summary == "- model report"
        assert session.behavior.duration_minutes == 1
        assert session.behavior.text_edit_count == 2
        prompt = gen.await_args.args[0]
        assert "Text edits: 2" in prompt

    @pytest.mark.asyncio
    async def test_template_when_model_unavailable(self):
        session = store.create_session()
        await _seed(session.session_link, [[_edit(0, "function foo() {" + " " * 110)]])

        report = await generate_llm_summary(session.session_link)

        assert report == session.llm_summary
        assert "1 large code-like insertion" in report

    @pytest.mark.asyncio
    async def test_no_chunks_skips_analysis(self):
        session = store.create_session()
        assert await generate_llm_summary(session.session_link) is None
        assert session.behavior is None
        assert session.llm_summary is None

    @pytest.mark.asyncio
    async def test_malformed_chunk_skips_analysis(self):
        session = store.create_session()
        await _seed(session.session_link, [[_edit(0)]])
        chunk_store = store.get_chunk_store()
        key = (await chunk_store.list_chunks(session.session_link))[0].pathname
        chunk_store._objects[key] = '{"sessionId": 1}'

        assert await generate_llm_summary(session.session_link) is None
        assert session.behavior is None

    @pytest.mark.asyncio
    async def test_unknown_session(self):
        assert await generate_llm_summary("ghost") is None

    @pytest.mark.asyncio
    async def test_model_error_never_raises(self):
        session = store.create_session()
        await _seed(session.session_link, [[_edit(0)]])
        with patch("analysis.summary.generate_report", new=AsyncMock(side_effect=RuntimeError("boom"))):
            assert await generate_llm_summary(session.session_link) is None


class TestReportText:
    def test_prompt_carries_statistics(self):
        prompt = build_report_prompt(_summary())
        assert "Recording duration: 12 minutes" in prompt
        assert "Copy-paste patterns: 2" in prompt
        assert "- a.py\n- b.py" in prompt

    def test_template_flags_indicators(self):
        report = build_template_report(_summary())
        assert "2 large code-like insertions" in report
        assert "1 other large insertion " in report
        assert "1 burst of very fast" in report
        assert "walk through the flagged insertions" in report

    def test_template_quiet_session(self):
        report = build_template_report(_summary(
            rapid_insertion_count=0, copy_paste_pattern_count=0, high_frequency_edit_burst_count=0,
        ))
        assert "No strong indicators" in report
        assert "reasoning and trade-offs" in report

    def test_template_frequent_switching(self):
        report = build_template_report(_summary(tab_switch_count=200, duration_minutes=10))
        assert "Frequent context switching: 200 tab changes" in report
