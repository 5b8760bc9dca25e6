import json
import zipfile

import pytest

from dynamicso.errors import PackagingError
from dynamicso.models import LibraryArtifact
from dynamicso.stages.hasher import hash_artifact
from dynamicso.stages.packager import archive_name, package


def _artifact(tmp_path, content=b"\x7fELF-binary"):
    src = tmp_path / "arm64-v8a" / "libflutter.so"
    src.parent.mkdir(parents=True, exist_ok=True)
    src.write_bytes(content)
    return hash_artifact(LibraryArtifact("arm64-v8a", "libflutter", src, len(content), "3.16.0-deadbeef"))


def test_archive_name_uses_base_version():
    assert archive_name("libflutter", "3.16.0-deadbeef", "abc123", "arm64-v8a") == "libflutter_3.16.0-abc123-arm64-v8a.zip"


def test_package_contains_binary_and_package_info(tmp_path):
    art = _artifact(tmp_path)
    out = tmp_path / "out"

    zip_path = package(art, version="3.16.0-deadbeef", package_name="libflutter", out_dir=out)

    assert zip_path.name == f"libflutter_3.16.0-{art.digest}-arm64-v8a.zip"
    with zipfile.ZipFile(zip_path) as zf:
        assert sorted(zf.namelist()) == ["libflutter.so", "package_info.json"]
        assert zf.read("libflutter.so") == b"\x7fELF-binary"
        info = json.loads(zf.read("package_info.json"))
    assert info["version"] == "3.16.0-deadbeef"
    assert info["md5"] == art.digest
    assert info["size"] == art.size_bytes
    assert info["fileName"] == "libflutter.so"
    assert info["packageName"] == "libflutter"
    assert isinstance(info["createTime"], int) and info["createTime"] > 0


def test_package_info_uses_configured_digest_name(tmp_path):
    art = _artifact(tmp_path)
    zip_path = package(art, version="1.0.0", package_name="libflutter", out_dir=tmp_path / "out", digest_name="sha256")
    with zipfile.ZipFile(zip_path) as zf:
        info = json.loads(zf.read("package_info.json"))
    assert "sha256" in info and "md5" not in info


def test_package_fails_when_source_vanished(tmp_path):
    art = _artifact(tmp_path)
    art.file_path.unlink()
    out = tmp_path / "out"

    with pytest.raises(PackagingError):
        package(art, version="1.0.0", package_name="libflutter", out_dir=out)
    assert not out.exists()


def test_package_fails_when_output_unwritable(tmp_path):
    art = _artifact(tmp_path)
    blocker = tmp_path / "out"
    blocker.write_text("not a directory")

    with pytest.raises(PackagingError):
        package(art, version="1.0.0", package_name="libflutter", out_dir=blocker)
    assert blocker.read_text() == "not a directory"


def test_package_requires_hashed_artifact(tmp_path):
    src = tmp_path / "libapp.so"
    src.write_bytes(b"x")
    with pytest.raises(PackagingError):
        package(LibraryArtifact("arm64-v8a", "libapp", src, 1, "1.0.0"), version="1.0.0", package_name="libapp", out_dir=tmp_path)
