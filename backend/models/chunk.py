from pydantic import BaseModel, ConfigDict, Field

from models.event import RecordingEvent

# Chunk keys are zero-padded to this many digits so that lexicographic
# listing order equals chunk order.
CHUNK_INDEX_WIDTH = 4
MAX_CHUNK_INDEX = 10 ** CHUNK_INDEX_WIDTH - 1


class RecordingChunk(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    chunk_index: int = Field(alias="chunkIndex", ge=0, le=MAX_CHUNK_INDEX)
    events: list[RecordingEvent]
    timestamp: int          # flush time, Unix ms

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
