from __future__ import annotations

import typing as t
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from dynamicso.errors import ConfigInvalid
from dynamicso.utils import normalize_http_url
from dynamicso.versioning import compare_versions, is_valid_version

DEFAULT_MIN_APP_VERSION = "1.0.0"
DEFAULT_MAX_APP_VERSION = "9.9.9"
PACKAGE_INFO_FILE = "package_info.json"


class LibraryKind(str, Enum):
    """Registry type discriminator for a library."""
    ENGINE = "engine"
    APP = "app"


# (default logical name, default manifest file) per kind
KIND_DEFAULTS: t.Dict[LibraryKind, t.Tuple[str, str]] = {
    LibraryKind.ENGINE: ("libflutter", "flutterso.json"),
    LibraryKind.APP: ("libapp", "appso.json"),
}


@dataclass(frozen=True)
class LibraryArtifact:
    architecture: str
    logical_name: str
    file_path: Path
    size_bytes: int
    source_version: str
    digest: str = ""

    @property
    def file_name(self) -> str:
        return self.file_path.name


@dataclass(frozen=True)
class RegistryLookupResult:
    found: bool
    retrieval_url: t.Optional[str] = None


NOT_FOUND = RegistryLookupResult(found=False)


@dataclass(frozen=True)
class ArchiveRecord:
    version: str
    digest: str
    size_bytes: int
    file_name: str
    package_name: str
    creation_timestamp: int

    def to_dict(self, digest_name: str = "md5") -> dict:
        return {
            "version": self.version,
            digest_name: self.digest,
            "size": self.size_bytes,
            "fileName": self.file_name,
            "packageName": self.package_name,
            "createTime": self.creation_timestamp,
        }


@dataclass(frozen=True)
class ArchitectureEntry:
    architecture: str
    retrieval_url: str
    digest: str
    size_bytes: int

    def to_dict(self, digest_name: str = "md5") -> dict:
        return {"url": self.retrieval_url, digest_name: self.digest, "size": self.size_bytes}


@dataclass(frozen=True)
class ManifestDescriptor:
    library_name: str
    library_version: str
    entries: t.Dict[str, ArchitectureEntry]
    min_app_version: str = DEFAULT_MIN_APP_VERSION
    max_app_version: str = DEFAULT_MAX_APP_VERSION
    override_upload_url: t.Optional[str] = None
    override_download_url: t.Optional[str] = None

    def to_dict(self, digest_name: str = "md5") -> dict:
        out: dict = {f"{self.library_name}Version": self.library_version}
        for arch in sorted(self.entries):
            out[arch] = self.entries[arch].to_dict(digest_name)
        out["minAppVersion"] = self.min_app_version
        out["maxAppVersion"] = self.max_app_version
        if self.override_upload_url:
            out["uploadUrl"] = self.override_upload_url
        if self.override_download_url:
            out["downloadUrl"] = self.override_download_url
        return out


class LibraryPolicyConfig(BaseModel):
    """Caller-declared compatibility policy for one library."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    min_version: str = DEFAULT_MIN_APP_VERSION
    max_version: str = DEFAULT_MAX_APP_VERSION
    upload_url: str = ""
    download_url: str = ""

    @field_validator("min_version", "max_version")
    @classmethod
    def _check_version(cls, v: str) -> str:
        if not is_valid_version(v):
            raise ValueError(f"invalid version {v!r}, expected x.y.z")
        return v

    @field_validator("upload_url", "download_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = (v or "").strip()
        if v and normalize_http_url(v) is None:
            raise ValueError(f"invalid url {v!r}, expected http(s)://")
        return v

    @model_validator(mode="after")
    def _check_range(self) -> "LibraryPolicyConfig":
        if compare_versions(self.min_version, self.max_version) > 0:
            raise ValueError(f"min_version {self.min_version} > max_version {self.max_version}")
        return self


def validate_policy(name: str, data: t.Optional[t.Mapping[str, t.Any]]) -> t.Optional[LibraryPolicyConfig]:
    """Build a policy from raw config, raising ``ConfigInvalid`` on rejection.

    ``None`` means no policy was declared; the manifest then uses the default
    version bounds.
    """
    if data is None:
        return None
    try:
        return LibraryPolicyConfig(**{**dict(data), "name": name})
    except ValidationError as e:
        reasons = "; ".join(err["msg"] for err in e.errors())
        raise ConfigInvalid(f"policy for {name} rejected: {reasons}") from e


@dataclass
class PipelineOutcome:
    per_architecture_success: t.Dict[str, bool] = field(default_factory=dict)
    manifest_written: bool = False

    def record(self, arch: str, ok: bool) -> None:
        self.per_architecture_success[arch] = ok

    @property
    def all_succeeded(self) -> bool:
        return bool(self.per_architecture_success) and all(self.per_architecture_success.values())


@dataclass(frozen=True)
class LibraryTarget:
    """One library to offload for the current build variant."""
    kind: LibraryKind
    name: str
    version: str
    manifest_file: str
    policy: t.Optional[t.Mapping[str, t.Any]] = None


@dataclass
class LibraryReport:
    name: str
    status: str
    outcome: PipelineOutcome = field(default_factory=PipelineOutcome)
    manifest_path: t.Optional[Path] = None
    deleted: t.List[Path] = field(default_factory=list)
    errors: t.Dict[str, str] = field(default_factory=dict)
