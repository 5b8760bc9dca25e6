"""Registry gate: is this (library, version, architecture, digest) already hosted?

The gate fails open. Any error talking to the registry reads as "not found",
so the binary is uploaded again rather than left without a hosted copy.
"""
from __future__ import annotations

import typing as t

import requests

from dynamicso.errors import RegistryUnavailable
from dynamicso.models import NOT_FOUND, RegistryLookupResult
from dynamicso.utils import get_logger

logger = get_logger(__name__)


class Registry(t.Protocol):
    def lookup(self, kind: str, key: str) -> RegistryLookupResult:
        ...


class NullRegistry:
    """Registry that never knows anything; every artifact gets uploaded."""

    def lookup(self, kind: str, key: str) -> RegistryLookupResult:
        return NOT_FOUND


class HttpRegistry:
    """``GET <url>/api/check?type=<kind>&key=<key>`` -> ``{"found": bool, "url": str}``."""

    def __init__(self, session: t.Any, url: str, *, timeout: float = 60.0):
        self.session = session
        self.url = url.rstrip("/")
        self.timeout = timeout

    def lookup(self, kind: str, key: str) -> RegistryLookupResult:
        try:
            r = self.session.get(
                f"{self.url}/api/check",
                params={"type": kind, "key": key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RegistryUnavailable(f"registry request failed: {e}") from e
        if not 200 <= r.status_code < 300:
            raise RegistryUnavailable(f"registry returned status {r.status_code}")
        try:
            body = r.json()
        except ValueError as e:
            raise RegistryUnavailable("registry returned a non-JSON body") from e
        if not isinstance(body, dict):
            raise RegistryUnavailable("registry returned an unexpected body")
        url = body.get("url") or None
        if body.get("found") and url:
            return RegistryLookupResult(found=True, retrieval_url=str(url))
        return NOT_FOUND


def dedup_key(version: str, arch: str, digest: str) -> str:
    return f"{version}-{arch}-{digest}"


def check_registry(registry: Registry, kind: str, key: str) -> RegistryLookupResult:
    try:
        result = registry.lookup(kind, key)
    except Exception as e:
        logger.warning("registry.unavailable type=%s key=%s err=%s -> treating as not found", kind, key, e)
        return NOT_FOUND
    if result.found and not result.retrieval_url:
        logger.warning("registry.hit_without_url type=%s key=%s -> treating as not found", kind, key)
        return NOT_FOUND
    logger.info("registry.checked type=%s key=%s found=%s", kind, key, result.found)
    return result
