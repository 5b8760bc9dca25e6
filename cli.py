#!/usr/bin/env python3
import argparse

from dynamicso.orchestrator import run_once


def main():
    parser = argparse.ArgumentParser(description="Offload bundled native libraries and write download manifests")
    parser.add_argument("--config", required=True, help="Path to YAML config")
    parser.add_argument("--native-libs-dir", dest="native_libs_dir", help="Merged native libs output directory")
    parser.add_argument("--resource-dir", dest="resource_dir", help="Bundled resource (assets) directory for manifests")
    parser.add_argument("--temp-dir", dest="temp_dir", help="Directory for temporary archives")
    parser.add_argument("--arch", dest="architectures", action="append", help="Target architecture (repeatable)")
    parser.add_argument("--base-url", dest="base_url", help="Upload/download server base URL")
    parser.add_argument("--registry-url", dest="registry_url", help="Registry base URL; empty disables the check")
    parser.add_argument("--digest", dest="digest", help="hashlib digest name (default md5)")
    parser.add_argument("--only", dest="only", action="append", help="Process only this library name (repeatable)")
    args = parser.parse_args()

    overrides = {
        "native_libs_dir": args.native_libs_dir,
        "resource_dir": args.resource_dir,
        "temp_dir": args.temp_dir,
        "architectures": args.architectures,
        "base_url": args.base_url,
        "registry_url": args.registry_url,
        "digest": args.digest,
        "only": args.only,
    }

    reports = run_once(args.config, overrides=overrides)
    for r in reports:
        # the build never fails on pipeline errors; originals stay in place
        deleted = len(r.deleted)
        print(f"{r.name}: {r.status} deleted={deleted}" + (f" manifest={r.manifest_path}" if r.manifest_path else ""))


if __name__ == "__main__":
    main()
