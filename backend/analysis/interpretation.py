"""
Template-based report used when the language model is unavailable.

One sentence per indicator, assembled into a bulleted summary with the same
four sections the model is asked to produce.
"""

from models.summary import BehaviorSummary


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" + ("" if n == 1 else "s")


def _activity_line(summary: BehaviorSummary) -> str:
    return (
        f"- Activity: {_plural(summary.total_events, 'event')} over "
        f"{_plural(summary.duration_minutes, 'minute')}, "
        f"{_plural(summary.text_edit_count, 'text edit')} across "
        f"{_plural(len(summary.files_opened), 'file')}."
    )


def _indicator_lines(summary: BehaviorSummary) -> list[str]:
    lines = []
    if summary.copy_paste_pattern_count:
        lines.append(
            f"- {_plural(summary.copy_paste_pattern_count, 'large code-like insertion')} "
            "detected — consistent with pasted or generated code."
        )
    if summary.rapid_insertion_count > summary.copy_paste_pattern_count:
        other = summary.rapid_insertion_count - summary.copy_paste_pattern_count
        lines.append(f"- {_plural(other, 'other large insertion')} without code-like content.")
    if summary.high_frequency_edit_burst_count:
        lines.append(
            f"- {_plural(summary.high_frequency_edit_burst_count, 'burst')} of very fast "
            "consecutive edits — may indicate automated insertion."
        )
    if summary.duration_minutes and summary.tab_switch_count / summary.duration_minutes > 10:
        lines.append(
            f"- Frequent context switching: {_plural(summary.tab_switch_count, 'tab change')} "
            f"in {_plural(summary.duration_minutes, 'minute')}."
        )
    if not lines:
        lines.append("- No strong indicators of AI assistance were detected.")
    return lines


def build_template_report(summary: BehaviorSummary) -> str:
    flagged = summary.copy_paste_pattern_count or summary.high_frequency_edit_burst_count

    parts = ["Overall activity:", _activity_line(summary)]
    if summary.files_opened:
        parts.append("- Files worked on: " + ", ".join(summary.files_opened))

    parts.append("")
    parts.append("Potential signs of AI assistance:")
    parts.extend(_indicator_lines(summary))

    parts.append("")
    parts.append("Interview quality:")
    if summary.text_edit_count == 0:
        parts.append("- The recording contains no text edits; there is little to assess.")
    elif summary.duration_minutes < 5:
        parts.append("- The recording is short; treat the indicators with caution.")
    else:
        parts.append("- The recording covers enough activity for the indicators to be meaningful.")

    parts.append("")
    parts.append("Recommendations:")
    if flagged:
        parts.append("- Ask the candidate to walk through the flagged insertions and explain their design.")
    else:
        parts.append("- Focus the debrief on the candidate's reasoning and trade-offs.")

    return "\n".join(parts)
