from pydantic import BaseModel, ConfigDict


class BehaviorSummary(BaseModel):
    """Statistics computed over one completed session's event stream."""
    model_config = ConfigDict(frozen=True)

    total_events: int
    duration_minutes: int
    files_opened: list[str]             # distinct, first-seen order
    text_edit_count: int
    tab_switch_count: int
    rapid_insertion_count: int          # insertions longer than the size threshold
    copy_paste_pattern_count: int       # large insertions with code-like tokens
    high_frequency_edit_burst_count: int
