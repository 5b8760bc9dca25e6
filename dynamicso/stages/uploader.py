from __future__ import annotations

import typing as t
from pathlib import Path

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from dynamicso.errors import UploadFailure
from dynamicso.utils import get_logger

if t.TYPE_CHECKING:
    from dynamicso.context import PipelineContext

logger = get_logger(__name__)

_TRANSIENT = (requests.ConnectionError, requests.Timeout)


def _post_archive(ctx: "PipelineContext", zip_path: Path):
    with zip_path.open("rb") as fh:
        return ctx.session.post(
            ctx.upload_endpoint,
            files={"file": (zip_path.name, fh, "application/zip")},
            timeout=ctx.timeout,
        )


def _post_with_retry(ctx: "PipelineContext", zip_path: Path):
    retryer = Retrying(
        stop=stop_after_attempt(max(1, ctx.upload_attempts)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT),
        reraise=True,
    )
    return retryer(_post_archive, ctx, zip_path)


def parse_upload_response(ctx: "PipelineContext", response) -> str:
    """Turn an upload response into a download URL or raise ``UploadFailure``."""
    if not 200 <= response.status_code < 300:
        raise UploadFailure(f"upload returned status {response.status_code}")
    try:
        body = response.json()
    except ValueError as e:
        raise UploadFailure("upload response is not JSON") from e
    if not isinstance(body, dict) or body.get("success") is not True:
        raise UploadFailure(f"upload rejected: {body!r}")
    filename = body.get("filename")
    if not isinstance(filename, str) or not filename.strip():
        raise UploadFailure("upload response carries no filename")
    return ctx.download_url(filename.strip())


def upload(ctx: "PipelineContext", zip_path: Path) -> t.Optional[str]:
    """Upload one archive; return its download URL, or ``None`` on any failure."""
    zip_path = Path(zip_path)
    logger.info("uploader.start archive=%s endpoint=%s", zip_path.name, ctx.upload_endpoint)
    try:
        response = _post_with_retry(ctx, zip_path)
        url = parse_upload_response(ctx, response)
    except (requests.RequestException, OSError, UploadFailure) as e:
        logger.error("uploader.failed archive=%s err=%s", zip_path.name, e)
        return None
    logger.info("uploader.done archive=%s url=%s", zip_path.name, url)
    return url
