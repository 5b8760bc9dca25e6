from __future__ import annotations

import typing as t
from pathlib import Path

from dynamicso.models import LibraryArtifact, ManifestDescriptor, PipelineOutcome
from dynamicso.utils import get_logger

logger = get_logger(__name__)


def cleanup_allowed(
    outcome: PipelineOutcome,
    artifacts: t.Mapping[str, LibraryArtifact],
    manifest: t.Optional[ManifestDescriptor],
) -> bool:
    """All-or-nothing: every targeted arch resolved, hosted, and the manifest written."""
    if not artifacts or manifest is None or not outcome.manifest_written:
        return False
    for arch in artifacts:
        if not outcome.per_architecture_success.get(arch):
            return False
        entry = manifest.entries.get(arch)
        if entry is None or not entry.retrieval_url:
            return False
    return True


def cleanup(
    outcome: PipelineOutcome,
    artifacts: t.Mapping[str, LibraryArtifact],
    manifest: t.Optional[ManifestDescriptor],
) -> t.List[Path]:
    """Delete the original binaries when the gate allows it; return what was removed."""
    if not cleanup_allowed(outcome, artifacts, manifest):
        logger.warning(
            "cleanup.vetoed archs=%s manifest_written=%s -> originals kept",
            {a: outcome.per_architecture_success.get(a, False) for a in sorted(artifacts)},
            outcome.manifest_written,
        )
        return []

    deleted: t.List[Path] = []
    for arch in sorted(artifacts):
        path = artifacts[arch].file_path
        try:
            path.unlink()
        except OSError as e:
            logger.error("cleanup.delete_failed arch=%s path=%s err=%s", arch, path, e)
            continue
        deleted.append(path)
        logger.info("cleanup.deleted arch=%s path=%s", arch, path)
    return deleted
