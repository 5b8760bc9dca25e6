from __future__ import annotations

import dataclasses
import typing as t
from dataclasses import dataclass, field
from pathlib import Path

import requests

from dynamicso.models import ArchitectureEntry
from dynamicso.stages.registry import NullRegistry, Registry

DEFAULT_ARCHITECTURES: t.Tuple[str, ...] = ("arm64-v8a", "armeabi-v7a")
DEFAULT_BASE_URL = "http://127.0.0.1:1234"
DEFAULT_TIMEOUT = 60.0
DEFAULT_CHUNK_SIZE = 1024 * 1024


@dataclass
class PipelineContext:
    """Everything a stage needs: clients, endpoints, paths and the run's entries.

    ``entries`` accumulates resolved architectures for exactly one
    (library, variant) run; use :meth:`for_run` to get a fresh copy per library.
    """

    native_libs_dir: Path
    resource_dir: Path
    temp_dir: Path
    session: t.Any = field(default_factory=requests.Session)
    registry: Registry = field(default_factory=NullRegistry)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    upload_attempts: int = 2
    architectures: t.Tuple[str, ...] = DEFAULT_ARCHITECTURES
    digest_name: str = "md5"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    entries: t.Dict[str, ArchitectureEntry] = field(default_factory=dict)

    def for_run(self) -> "PipelineContext":
        return dataclasses.replace(self, entries={})

    @property
    def upload_endpoint(self) -> str:
        return f"{self.base_url}/api/upload"

    def download_url(self, filename: str) -> str:
        return f"{self.base_url}/api/download/{filename}"
