import hashlib
import time
import uuid
import yaml
import requests
from pathlib import Path
from typing import Dict, Any, List, Optional

from dynamicso.context import DEFAULT_ARCHITECTURES, DEFAULT_BASE_URL, DEFAULT_TIMEOUT, PipelineContext
from dynamicso.errors import ConfigInvalid, HashError, PackagingError, WriteError
from dynamicso.models import (
    KIND_DEFAULTS,
    ArchitectureEntry,
    LibraryArtifact,
    LibraryKind,
    LibraryReport,
    LibraryTarget,
    validate_policy,
)
from dynamicso.stages.cleanup import cleanup
from dynamicso.stages.hasher import hash_artifact
from dynamicso.stages.locator import locate
from dynamicso.stages.manifest import build_manifest, write_manifest
from dynamicso.stages.packager import package
from dynamicso.stages.registry import HttpRegistry, NullRegistry, check_registry, dedup_key
from dynamicso.stages.uploader import upload
from dynamicso.utils import get_logger, normalize_http_url, validate_config

logger = get_logger(__name__)

DEFAULT_TEMP_DIR = "build/temp_so_packages"


def _process_architecture(
    ctx: PipelineContext,
    target: LibraryTarget,
    artifact: LibraryArtifact,
    report: LibraryReport,
) -> bool:
    """Hash, check, package and upload one architecture; True once it is hosted."""
    arch = artifact.architecture
    try:
        hashed = hash_artifact(artifact, algorithm=ctx.digest_name, chunk_size=ctx.chunk_size)
    except HashError as e:
        logger.error("pipeline.arch_failed name=%s arch=%s stage=hash err=%s", target.name, arch, e)
        report.errors[arch] = str(e)
        return False

    key = dedup_key(target.version, arch, hashed.digest)
    hit = check_registry(ctx.registry, target.kind.value, key)
    if hit.found:
        logger.info("pipeline.already_hosted name=%s arch=%s url=%s", target.name, arch, hit.retrieval_url)
        url = hit.retrieval_url
    else:
        try:
            zip_path = package(
                hashed,
                version=target.version,
                package_name=target.name,
                out_dir=ctx.temp_dir,
                digest_name=ctx.digest_name,
            )
        except PackagingError as e:
            logger.error("pipeline.arch_failed name=%s arch=%s stage=package err=%s", target.name, arch, e)
            report.errors[arch] = str(e)
            return False

        url = upload(ctx, zip_path)
        if not url:
            logger.error("pipeline.arch_failed name=%s arch=%s stage=upload archive=%s", target.name, arch, zip_path)
            report.errors[arch] = f"upload failed for {zip_path.name}"
            return False
        zip_path.unlink(missing_ok=True)

    ctx.entries[arch] = ArchitectureEntry(
        architecture=arch,
        retrieval_url=url,
        digest=hashed.digest,
        size_bytes=hashed.size_bytes,
    )
    return True


def run_library(ctx: PipelineContext, target: LibraryTarget) -> LibraryReport:
    """Run the whole offload pipeline for one library of the current variant.

    Never raises for pipeline errors. The originals are only deleted as the
    final step, and only when every discovered architecture is hosted and the
    manifest is on disk.
    """
    ctx = ctx.for_run()
    report = LibraryReport(name=target.name, status="skipped")

    if not target.version:
        logger.info("pipeline.skip name=%s reason=no_version", target.name)
        return report

    try:
        policy = validate_policy(target.name, target.policy)
    except ConfigInvalid as e:
        logger.error("pipeline.config_invalid name=%s err=%s", target.name, e)
        report.status = "config_invalid"
        report.errors["config"] = str(e)
        return report

    t0 = time.monotonic()
    artifacts = locate(ctx.native_libs_dir, ctx.architectures, target.name, version=target.version)
    if not artifacts:
        logger.info("pipeline.no_op name=%s reason=no_binaries dir=%s", target.name, ctx.native_libs_dir)
        report.status = "no_op"
        return report

    outcome = report.outcome
    for arch in sorted(artifacts):
        outcome.record(arch, _process_architecture(ctx, target, artifacts[arch], report))

    manifest = build_manifest(target.name, target.version, ctx.entries, policy)
    manifest_path = ctx.resource_dir / target.manifest_file
    try:
        report.manifest_path = write_manifest(manifest, manifest_path, digest_name=ctx.digest_name)
        outcome.manifest_written = True
    except WriteError as e:
        logger.error("pipeline.manifest_failed name=%s err=%s -> originals kept", target.name, e)
        report.errors["manifest"] = str(e)

    report.deleted = cleanup(outcome, artifacts, manifest)

    if not outcome.manifest_written:
        report.status = "write_failed"
    elif outcome.all_succeeded:
        report.status = "complete"
    else:
        report.status = "partial"
    logger.info(
        "pipeline.done name=%s status=%s hosted=%d/%d deleted=%d took_ms=%d",
        target.name,
        report.status,
        len(ctx.entries),
        len(artifacts),
        len(report.deleted),
        int((time.monotonic() - t0) * 1000),
    )
    return report


# ---------- Configuration ----------

def _apply_overrides(cfg: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> None:
    if not overrides:
        return

    build = cfg.setdefault("build", {})
    if overrides.get("native_libs_dir") is not None:
        build["native_libs_dir"] = overrides["native_libs_dir"]
    if overrides.get("resource_dir") is not None:
        build["resource_dir"] = overrides["resource_dir"]
    if overrides.get("temp_dir") is not None:
        build["temp_dir"] = overrides["temp_dir"]
    if overrides.get("architectures"):
        build["architectures"] = list(overrides["architectures"])

    server = cfg.setdefault("server", {})
    if overrides.get("base_url") is not None:
        server["base_url"] = overrides["base_url"]
    if overrides.get("registry_url") is not None:
        server["registry_url"] = overrides["registry_url"]

    if overrides.get("digest") is not None:
        cfg["digest"] = overrides["digest"]


def build_context(cfg: Dict[str, Any], session: Any = None) -> PipelineContext:
    build = cfg["build"]
    server = cfg.get("server") or {}
    session = session if session is not None else requests.Session()
    timeout = float(server.get("timeout", DEFAULT_TIMEOUT))

    base_url = normalize_http_url(server.get("base_url", DEFAULT_BASE_URL))
    if base_url is None:
        raise ValueError(f"Config validation error: invalid server.base_url {server.get('base_url')!r}")

    registry_url = server.get("registry_url") or ""
    if registry_url:
        normalized = normalize_http_url(registry_url)
        if normalized is None:
            raise ValueError(f"Config validation error: invalid server.registry_url {registry_url!r}")
        registry = HttpRegistry(session, normalized, timeout=timeout)
    else:
        registry = NullRegistry()

    digest_name = cfg.get("digest", "md5")
    if digest_name not in hashlib.algorithms_available or hashlib.new(digest_name).digest_size <= 0:
        raise ValueError(f"Config validation error: unsupported digest {digest_name!r}")

    return PipelineContext(
        native_libs_dir=Path(build["native_libs_dir"]),
        resource_dir=Path(build["resource_dir"]),
        temp_dir=Path(build.get("temp_dir", DEFAULT_TEMP_DIR)),
        session=session,
        registry=registry,
        base_url=base_url,
        timeout=timeout,
        upload_attempts=int(server.get("upload_attempts", 2)),
        architectures=tuple(build.get("architectures") or DEFAULT_ARCHITECTURES),
        digest_name=digest_name,
    )


def build_targets(cfg: Dict[str, Any]) -> List[LibraryTarget]:
    targets: List[LibraryTarget] = []
    for lib in cfg.get("libraries", []):
        kind = LibraryKind(lib["kind"])
        default_name, default_manifest = KIND_DEFAULTS[kind]
        name = lib.get("name") or default_name
        manifest_file = lib.get("manifest_file") or (default_manifest if name == default_name else f"{name}.json")
        targets.append(
            LibraryTarget(
                kind=kind,
                name=name,
                version=str(lib.get("version") or ""),
                manifest_file=manifest_file,
                policy=lib.get("policy"),
            )
        )
    return targets


def run_once(
    config_path: str,
    *,
    overrides: Optional[Dict[str, Any]] = None,
    session: Any = None,
) -> List[LibraryReport]:
    """Load a YAML config and run every declared library once."""
    run_id = uuid.uuid4().hex[:8]
    logger.info("=== run start id=%s ===", run_id)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
        _apply_overrides(cfg, overrides)
        validate_config(cfg)
        ctx = build_context(cfg, session=session)
        targets = build_targets(cfg)
        if overrides and overrides.get("only"):
            wanted = set(overrides["only"])
            targets = [t for t in targets if t.name in wanted]
        logger.info(
            "config loaded libs=%s archs=%s base_url=%s",
            ",".join(t.name for t in targets) or "-",
            ",".join(ctx.architectures),
            ctx.base_url,
        )
        if not targets:
            logger.info("no libraries configured -> nothing to do")
        return [run_library(ctx, target) for target in targets]

    except Exception as e:
        logger.error("Pipeline execution failed: %s", e)
        raise
    finally:
        logger.info("=== run end id=%s ===", run_id)
