from dynamicso.models import ArchitectureEntry, LibraryArtifact, ManifestDescriptor, PipelineOutcome
from dynamicso.stages.cleanup import cleanup, cleanup_allowed

from conftest import write_binary

ARCHS = ("arm64-v8a", "armeabi-v7a")


def _setup(libs_dir):
    artifacts = {}
    for arch in ARCHS:
        path = write_binary(libs_dir, arch, "libapp", b"bin-" + arch.encode())
        artifacts[arch] = LibraryArtifact(arch, "libapp", path, path.stat().st_size, "1.0.0")
    entries = {arch: ArchitectureEntry(arch, f"http://h/{arch}.zip", "d", 1) for arch in ARCHS}
    return artifacts, ManifestDescriptor("libapp", "1.0.0", entries)


def _outcome(ok=True, written=True):
    out = PipelineOutcome(manifest_written=written)
    for arch in ARCHS:
        out.record(arch, ok)
    return out


def test_cleanup_deletes_all_when_everything_succeeded(libs_dir):
    artifacts, manifest = _setup(libs_dir)

    deleted = cleanup(_outcome(), artifacts, manifest)

    assert sorted(deleted) == sorted(a.file_path for a in artifacts.values())
    assert not any(a.file_path.exists() for a in artifacts.values())


def test_one_failed_architecture_vetoes_every_deletion(libs_dir):
    artifacts, manifest = _setup(libs_dir)
    outcome = _outcome()
    outcome.record("armeabi-v7a", False)

    assert cleanup(outcome, artifacts, manifest) == []
    assert all(a.file_path.exists() for a in artifacts.values())


def test_unwritten_manifest_vetoes_deletion(libs_dir):
    artifacts, manifest = _setup(libs_dir)

    assert cleanup(_outcome(written=False), artifacts, manifest) == []
    assert cleanup(_outcome(), artifacts, None) == []
    assert all(a.file_path.exists() for a in artifacts.values())


def test_entry_without_locator_vetoes_deletion(libs_dir):
    artifacts, manifest = _setup(libs_dir)
    entries = dict(manifest.entries)
    entries["arm64-v8a"] = ArchitectureEntry("arm64-v8a", "", "d", 1)
    manifest = ManifestDescriptor("libapp", "1.0.0", entries)

    assert not cleanup_allowed(_outcome(), artifacts, manifest)


def test_missing_outcome_for_discovered_arch_vetoes(libs_dir):
    artifacts, manifest = _setup(libs_dir)
    outcome = PipelineOutcome(manifest_written=True)
    outcome.record("arm64-v8a", True)

    assert not cleanup_allowed(outcome, artifacts, manifest)


def test_nothing_discovered_means_nothing_to_delete():
    assert not cleanup_allowed(PipelineOutcome(manifest_written=True), {}, None)
