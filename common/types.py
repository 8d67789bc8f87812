from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from common.utils import iso_now_ms


IsoTime = str


def _new_id() -> str:
    return str(uuid.uuid4())


# Persisted key <- attribute name. The previous (.NET) service wrote PascalCase
# keys to disk; `from_dict` accepts both spellings.
_ENTRY_KEYS: Dict[str, str] = {
    "id": "id",
    "landscape_url": "landscapeUrl",
    "portrait_url": "portraitUrl",
    "landscape_path": "landscapePath",
    "portrait_path": "portraitPath",
    "landscape_path_compressed": "landscapePathCompressed",
    "portrait_path_compressed": "portraitPathCompressed",
    "copyright": "copyright",
    "title": "title",
    "cached_at": "cachedAt",
}


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """
    One cached spotlight image pair plus its metadata.

    Attributes:
        landscape_url, portrait_url: remote asset URLs the files came from.
        landscape_path, portrait_path: filenames inside the image directory.
        landscape_path_compressed, portrait_path_compressed: `_q<quality>`
            variants; None when transcoding failed.
        copyright, title: display metadata from the feed.
        id: opaque identifier, generated on creation.
        cached_at: ISO-8601 (UTC) creation timestamp.
    """
    landscape_url: str
    portrait_url: str
    landscape_path: str
    portrait_path: str
    landscape_path_compressed: Optional[str] = None
    portrait_path_compressed: Optional[str] = None
    copyright: str = ""
    title: Optional[str] = None
    id: str = field(default_factory=_new_id)
    cached_at: IsoTime = field(default_factory=iso_now_ms)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON object, as served by the API and written to disk."""
        raw = asdict(self)
        return {key: raw[attr] for attr, key in _ENTRY_KEYS.items()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CacheEntry":
        def pick(key: str) -> Any:
            if key in d:
                return d[key]
            return d.get(key[0].upper() + key[1:])

        kwargs = {attr: pick(key) for attr, key in _ENTRY_KEYS.items()}
        if not kwargs["landscape_path"] or not kwargs["portrait_path"]:
            raise ValueError("cache entry is missing a landscape/portrait filename")
        if kwargs["id"] is None:
            kwargs.pop("id")
        if kwargs["cached_at"] is None:
            kwargs.pop("cached_at")
        kwargs["copyright"] = kwargs["copyright"] or ""
        return cls(**kwargs)


@dataclass(slots=True)
class RemoteAdRecord:
    """A decoded feed item. Never persisted."""
    landscape_url: str
    portrait_url: str
    copyright: Optional[str] = None
    title: Optional[str] = None
    icon_hover_text: Optional[str] = None
