import os
import tempfile
from pathlib import Path

import pytest

# keep the rotating log file out of the working tree during test runs
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "dynamicso-test-logs"))

from dynamicso.context import PipelineContext  # noqa: E402
from dynamicso.models import RegistryLookupResult  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self._text = text

    def json(self):
        if self._text is not None:
            raise ValueError("not json")
        return self._body


class FakeSession:
    """Scripted stand-in for ``requests.Session``.

    ``post_results`` items are either a response or an exception to raise.
    """

    def __init__(self, post_results=None, get_results=None):
        self.post_results = list(post_results or [])
        self.get_results = list(get_results or [])
        self.posts = []
        self.gets = []

    def post(self, url, files=None, timeout=None):
        name, fh, content_type = files["file"]
        self.posts.append({"url": url, "name": name, "content_type": content_type, "data": fh.read(), "timeout": timeout})
        result = self.post_results.pop(0) if self.post_results else ok_upload(name)
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, params=None, timeout=None):
        self.gets.append({"url": url, "params": params, "timeout": timeout})
        result = self.get_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeRegistry:
    def __init__(self, hosted=None):
        self.hosted = dict(hosted or {})
        self.calls = []

    def lookup(self, kind, key):
        self.calls.append((kind, key))
        url = self.hosted.get(key)
        return RegistryLookupResult(found=url is not None, retrieval_url=url)


def ok_upload(filename):
    return FakeResponse(200, {"success": True, "filename": filename})


def write_binary(base: Path, arch: str, name: str, content: bytes) -> Path:
    path = base / arch / f"{name}.so"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.fixture
def libs_dir(tmp_path):
    d = tmp_path / "merged_native_libs"
    d.mkdir()
    return d


@pytest.fixture
def make_ctx(tmp_path, libs_dir):
    def _make(session=None, registry=None, **kw):
        return PipelineContext(
            native_libs_dir=libs_dir,
            resource_dir=tmp_path / "assets",
            temp_dir=tmp_path / "temp_so_packages",
            session=session if session is not None else FakeSession(),
            registry=registry if registry is not None else FakeRegistry(),
            upload_attempts=kw.pop("upload_attempts", 1),
            **kw,
        )

    return _make
