from __future__ import annotations

import typing as t
from pathlib import Path

from dynamicso.models import LibraryArtifact
from dynamicso.utils import get_logger

logger = get_logger(__name__)


def _candidates(base_dir: Path, arch: str, file_name: str) -> t.List[Path]:
    # merged native libs place ABIs either directly under the output dir or under lib/
    return [base_dir / arch / file_name, base_dir / "lib" / arch / file_name]


def locate(
    base_dir: Path,
    architectures: t.Iterable[str],
    logical_name: str,
    *,
    version: str,
) -> t.Dict[str, LibraryArtifact]:
    """Find ``<arch>/<logical_name>.so`` for each architecture.

    Missing or empty files are simply absent from the result.
    """
    archs = tuple(architectures)
    file_name = f"{logical_name}.so"
    found: t.Dict[str, LibraryArtifact] = {}
    for arch in archs:
        for path in _candidates(Path(base_dir), arch, file_name):
            if not path.is_file():
                continue
            size = path.stat().st_size
            if size <= 0:
                logger.info("locator.empty arch=%s path=%s", arch, path)
                continue
            found[arch] = LibraryArtifact(
                architecture=arch,
                logical_name=logical_name,
                file_path=path,
                size_bytes=size,
                source_version=version,
            )
            logger.info("locator.found arch=%s path=%s size=%d", arch, path, size)
            break
    logger.info("locator.done name=%s found=%d of=%d", logical_name, len(found), len(archs))
    return found
