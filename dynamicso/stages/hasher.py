from __future__ import annotations

import dataclasses
import hashlib
import typing as t
from pathlib import Path

from dynamicso.errors import HashError
from dynamicso.models import LibraryArtifact
from dynamicso.utils import get_logger

logger = get_logger(__name__)


def digest_file(path: Path, *, algorithm: str = "md5", chunk_size: int = 1024 * 1024) -> t.Tuple[str, int]:
    """Return ``(lowercase hex digest, byte length)`` of the file content."""
    try:
        h = hashlib.new(algorithm)
    except ValueError as e:
        raise HashError(f"unsupported digest algorithm {algorithm!r}") from e
    if h.digest_size <= 0:
        # shake_* digests need an explicit output length
        raise HashError(f"variable-length digest {algorithm!r} is not supported")
    size = 0
    try:
        with Path(path).open("rb") as fh:
            for chunk in iter(lambda: fh.read(chunk_size), b""):
                h.update(chunk)
                size += len(chunk)
    except OSError as e:
        raise HashError(f"cannot read {path}: {e}") from e
    return h.hexdigest(), size


def hash_artifact(artifact: LibraryArtifact, *, algorithm: str = "md5", chunk_size: int = 1024 * 1024) -> LibraryArtifact:
    digest, size = digest_file(artifact.file_path, algorithm=algorithm, chunk_size=chunk_size)
    logger.info("hasher.done arch=%s %s=%s size=%d", artifact.architecture, algorithm, digest, size)
    return dataclasses.replace(artifact, digest=digest, size_bytes=size)
