"""
Unit tests for JSON logging
"""

import json
import logging
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.logging_setup import JsonFormatter


def _record(msg, *args, exc_info=None, **extra):
    rec = logging.LogRecord("spotlight_cache.test", logging.WARNING, __file__, 1, msg, args, exc_info)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


class TestJsonFormatter:
    """One JSON object per record"""

    def test_basic_fields(self):
        """Level, logger name and rendered message"""
        out = json.loads(JsonFormatter().format(_record("Cached %d items", 3)))
        assert out["lvl"] == "WARNING"
        assert out["name"] == "spotlight_cache.test"
        assert out["msg"] == "Cached 3 items"
        assert isinstance(out["t"], int)

    def test_extra_and_exception(self):
        """Structured extras and tracebacks are carried along"""
        try:
            raise ValueError("bad")
        except ValueError:
            info = sys.exc_info()
        out = json.loads(JsonFormatter().format(_record("x", exc_info=info, extra={"url": "https://x"})))
        assert out["extra"] == {"url": "https://x"}
        assert "ValueError: bad" in out["exc_info"]

    def test_non_ascii(self):
        """© survives unescaped"""
        line = JsonFormatter().format(_record("© 2024 Example Corp"))
        assert "© 2024" in line
