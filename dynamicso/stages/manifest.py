from __future__ import annotations

import typing as t
from pathlib import Path

from dynamicso.errors import WriteError
from dynamicso.models import (
    DEFAULT_MAX_APP_VERSION,
    DEFAULT_MIN_APP_VERSION,
    ArchitectureEntry,
    LibraryPolicyConfig,
    ManifestDescriptor,
)
from dynamicso.utils import get_logger, write_json_durable
from dynamicso.versioning import base_version

logger = get_logger(__name__)


def build_manifest(
    library_name: str,
    version: str,
    entries: t.Mapping[str, ArchitectureEntry],
    policy: t.Optional[LibraryPolicyConfig] = None,
) -> ManifestDescriptor:
    """Aggregate resolved architectures and policy bounds into one descriptor."""
    if policy is not None:
        min_v, max_v = policy.min_version, policy.max_version
        upload_url = policy.upload_url or None
        download_url = policy.download_url or None
        logger.info("manifest.policy name=%s range=%s-%s", library_name, min_v, max_v)
    else:
        min_v, max_v = DEFAULT_MIN_APP_VERSION, DEFAULT_MAX_APP_VERSION
        upload_url = download_url = None
        logger.info("manifest.policy name=%s range=%s-%s (defaults)", library_name, min_v, max_v)

    return ManifestDescriptor(
        library_name=library_name,
        library_version=base_version(version),
        entries={arch: entries[arch] for arch in sorted(entries)},
        min_app_version=min_v,
        max_app_version=max_v,
        override_upload_url=upload_url,
        override_download_url=download_url,
    )


def write_manifest(descriptor: ManifestDescriptor, path: Path, *, digest_name: str = "md5") -> Path:
    """Persist the descriptor as JSON, replacing any previous file."""
    try:
        write_json_durable(descriptor.to_dict(digest_name), Path(path))
    except OSError as e:
        raise WriteError(f"cannot write manifest {path}: {e}") from e
    logger.info("manifest.written path=%s archs=%s", path, ",".join(sorted(descriptor.entries)) or "-")
    return Path(path)
