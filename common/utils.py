from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Union


def iso_now_ms() -> str:
    """UTC ISO-8601 timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def remove_quietly(path: Union[str, Path]) -> bool:
    """Delete a file if present. Returns True if something was removed."""
    try:
        os.remove(path)
        return True
    except (FileNotFoundError, NotADirectoryError):
        return False
