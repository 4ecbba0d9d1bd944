from storage.blob import (
    ChunkStore,
    ChunkStoreError,
    FileChunkStore,
    MemoryChunkStore,
    StoredChunk,
    chunk_key,
    deployment_scope,
)

__all__ = [
    "ChunkStore",
    "ChunkStoreError",
    "FileChunkStore",
    "MemoryChunkStore",
    "StoredChunk",
    "chunk_key",
    "deployment_scope",
]
