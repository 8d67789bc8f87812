from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Optional


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:
      { "t": 1729180000000, "lvl": "INFO", "name": "spotlight_cache.refresh", "msg": "text", "extra": {...} }
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # logger.info("...", extra={"extra": {...}}) attaches structured fields
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: Optional[str], fallback: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or fallback or "INFO").upper()
    if name == "WARN":
        name = "WARNING"
    lvl = getattr(logging, name, None)
    return lvl if isinstance(lvl, int) else logging.INFO


def setup_logging(level: Optional[str] = None, *, default: Optional[str] = None, force: bool = False) -> None:
    """
    Configure the root logger once with JSON formatting on stdout.

    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (DEBUG/INFO/WARN/ERROR)
      - `default` (usually the configured `log_level`)
      - INFO

    `force=True` reconfigures an already configured root logger; the server
    uses it once settings are loaded so the configured level takes effect.
    """
    root = logging.getLogger()
    if getattr(root, "_spotlight_configured", False) and not force:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level, default))
    root._spotlight_configured = True  # type: ignore[attr-defined]

    # uvicorn installs its own handlers; route them through the root JSON handler
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)
