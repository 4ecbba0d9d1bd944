"""Editor-side capture: normalization, chunking, session lifecycle, upload."""
