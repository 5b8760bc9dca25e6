from __future__ import annotations

import json
import zipfile
from pathlib import Path

from dynamicso.errors import PackagingError
from dynamicso.models import PACKAGE_INFO_FILE, ArchiveRecord, LibraryArtifact
from dynamicso.utils import epoch_millis, get_logger
from dynamicso.versioning import base_version

logger = get_logger(__name__)

ARCHIVE_EXT = "zip"


def archive_name(package_name: str, version: str, digest: str, arch: str) -> str:
    return f"{package_name}_{base_version(version)}-{digest}-{arch}.{ARCHIVE_EXT}"


def build_record(artifact: LibraryArtifact, version: str, package_name: str) -> ArchiveRecord:
    return ArchiveRecord(
        version=version,
        digest=artifact.digest,
        size_bytes=artifact.size_bytes,
        file_name=artifact.file_name,
        package_name=package_name,
        creation_timestamp=epoch_millis(),
    )


def package(
    artifact: LibraryArtifact,
    *,
    version: str,
    package_name: str,
    out_dir: Path,
    digest_name: str = "md5",
) -> Path:
    """Zip the binary together with its ``package_info.json`` record.

    The archive holds exactly two entries. A partially written archive is
    removed before ``PackagingError`` propagates.
    """
    if not artifact.digest:
        raise PackagingError(f"{artifact.architecture}: artifact has not been hashed")
    src = artifact.file_path
    if not src.is_file():
        raise PackagingError(f"{artifact.architecture}: source vanished: {src}")

    out_dir = Path(out_dir)
    zip_path = out_dir / archive_name(package_name, version, artifact.digest, artifact.architecture)
    record = build_record(artifact, version, package_name)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.write(src, arcname=artifact.file_name)
            zf.writestr(PACKAGE_INFO_FILE, json.dumps(record.to_dict(digest_name), ensure_ascii=False))
    except (OSError, zipfile.BadZipFile) as e:
        if zip_path.exists():
            zip_path.unlink()
        raise PackagingError(f"{artifact.architecture}: cannot build {zip_path.name}: {e}") from e

    logger.info("packager.done arch=%s archive=%s", artifact.architecture, zip_path)
    return zip_path
