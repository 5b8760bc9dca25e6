import os
import re
import json
import datetime as dt
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from jsonschema import validate, Draft202012Validator
from jsonschema.exceptions import ValidationError
from typing import Optional, Any
from pydantic import TypeAdapter, HttpUrl

# ---------- Time helpers ----------

def now_utc():
    return dt.datetime.now(dt.timezone.utc)

def epoch_millis() -> int:
    return int(now_utc().timestamp() * 1000)

# ---------- URL helpers ----------

_HTTP_URL_ADAPTER = TypeAdapter(HttpUrl)

def normalize_http_url(value: Any) -> Optional[str]:
    """Try to normalize a value into a valid http(s) URL string.

    - Trims whitespace and trailing slashes
    - Requires an explicit http:// or https:// scheme
    Returns normalized string on success; otherwise None.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if not re.match(r"^https?://", s, flags=re.IGNORECASE):
        return None
    try:
        _HTTP_URL_ADAPTER.validate_python(s)
    except Exception:
        return None
    return s.rstrip("/")

# ---------- Config validation ----------

def load_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

def validate_config(cfg: dict):
    here = os.path.dirname(os.path.abspath(__file__))
    schema_path = os.path.join(here, "schemas", "config.schema.json")
    schema = json.loads(load_file(schema_path))
    try:
        validate(instance=cfg, schema=schema, cls=Draft202012Validator)
    except ValidationError as e:
        raise ValueError(f"Config validation error: {e.message} at {list(e.path)}") from e

# ---------- Output writer ----------

def write_json_durable(payload: dict, path: Path) -> Path:
    """Write ``payload`` as pretty JSON, replacing ``path`` atomically.

    The content is flushed and fsynced to a sibling temp file before the
    rename, so readers see either the previous file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    return path

# ---------- Logging ----------

PACKAGE_LOGGER = "dynamicso"

_LOGGER_INITIALIZED = False

class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``stage`` is the emitting module (``uploader``, ``cleanup``...)."""

    def format(self, record):
        ts = dt.datetime.fromtimestamp(record.created, dt.timezone.utc)
        payload = {
            "ts": ts.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "stage": record.name.rsplit(".", 1)[-1],
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _build_logger():
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = os.getenv("LOG_DIR", "logs")
    json_mode = os.getenv("LOG_JSON", "false").lower() == "true"

    os.makedirs(log_dir, exist_ok=True)
    # handlers live on the package logger so the host build's root logging is left alone
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False

    ch = logging.StreamHandler()
    fh = TimedRotatingFileHandler(os.path.join(log_dir, "dynamicso.log"), when="D", backupCount=7, encoding="utf-8")

    if json_mode:
        fmt = JsonFormatter()
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s dynamicso [%(name)s] %(message)s")

    for handler in (ch, fh):
        handler.setLevel(logger.level)
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    _LOGGER_INITIALIZED = True

def get_logger(name: str = None) -> logging.Logger:
    """Return a logger under the ``dynamicso`` hierarchy, configuring it on first use."""
    _build_logger()
    if not name or name == "__main__":
        return logging.getLogger(PACKAGE_LOGGER)
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
