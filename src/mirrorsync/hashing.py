from __future__ import annotations

import hashlib
from pathlib import Path


CHUNK_SIZE = 1024 * 1024
DEFAULT_ALGORITHM = "sha256"


def hash_file(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Hex digest of the file's bytes, read in chunks so large files stay cheap."""
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        while chunk := handle.read(CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()
