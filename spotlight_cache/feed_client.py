"""
Spotlight feed client.

The feed answers with a batch envelope whose items carry their payload as a
JSON *string*, so every item is decoded twice:

    {"batchrsp": {"items": [{"item": "{\"ad\": {...}}"}, ...]}}

    ad = {
      "landscapeImage": {"asset": <url>},
      "portraitImage":  {"asset": <url>},
      "copyright": <str>, "title": <str>, "iconHoverText": <str>
    }

Usage:
    client = SpotlightFeedClient(timeout=30.0)
    records = client.fetch_feed(url)   # raises FetchError / DecodeError
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from common.types import RemoteAdRecord
from spotlight_cache.errors import DecodeError, FetchError


log = logging.getLogger(__name__)

COPYRIGHT_GLYPH = "©"

# Order matters: the two-character literal escape first, then real CRLF.
_LINE_SEPARATORS = ("\\r\\n", "\r\n", "\n", "\r")


def _split_lines(text: str) -> List[str]:
    parts = [text]
    for sep in _LINE_SEPARATORS:
        parts = [piece for part in parts for piece in part.split(sep)]
    return [p for p in parts if p]


def resolve_copyright(copyright: Optional[str], hover_text: Optional[str]) -> str:
    """
    Primary copyright field, else the second hover-text line if it starts with ©.

    >>> resolve_copyright("", "Title line\\n© 2024 Example Corp")
    '© 2024 Example Corp'
    """
    if copyright and copyright.strip():
        return copyright
    if not hover_text or not hover_text.strip():
        return copyright or ""
    lines = _split_lines(hover_text)
    if len(lines) > 1 and lines[1].strip().startswith(COPYRIGHT_GLYPH):
        return lines[1].strip()
    return copyright or ""


def _asset(ad: Dict[str, Any], key: str) -> Optional[str]:
    img = ad.get(key)
    if not isinstance(img, dict):
        return None
    url = img.get("asset")
    if not isinstance(url, str) or not url.strip():
        return None
    return url


def parse_item(raw: str) -> Optional[RemoteAdRecord]:
    """
    Decode one inner item string. Returns None if either asset URL is missing.
    Raises DecodeError if the string is not valid JSON.
    """
    try:
        inner = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"inner item is not valid JSON: {e}") from e
    ad = inner.get("ad") if isinstance(inner, dict) else None
    if not isinstance(ad, dict):
        return None
    landscape = _asset(ad, "landscapeImage")
    portrait = _asset(ad, "portraitImage")
    if landscape is None or portrait is None:
        return None
    return RemoteAdRecord(
        landscape_url=landscape,
        portrait_url=portrait,
        copyright=ad.get("copyright"),
        title=ad.get("title"),
        icon_hover_text=ad.get("iconHoverText"),
    )


def parse_envelope(doc: Any) -> List[RemoteAdRecord]:
    """Decode the outer batch document into records, skipping unusable items."""
    if not isinstance(doc, dict):
        raise DecodeError("feed envelope is not a JSON object")
    batch = doc.get("batchrsp")
    if batch is None:
        return []
    if not isinstance(batch, dict):
        raise DecodeError("'batchrsp' is not an object")
    items = batch.get("items") or []
    if not isinstance(items, list):
        raise DecodeError("'batchrsp.items' is not an array")

    records: List[RemoteAdRecord] = []
    for idx, container in enumerate(items):
        raw = container.get("item") if isinstance(container, dict) else None
        if not isinstance(raw, str) or not raw.strip():
            continue
        try:
            rec = parse_item(raw)
        except DecodeError as e:
            log.warning("Failed to parse inner JSON item #%d, skipping: %s", idx, e)
            continue
        if rec is None:
            log.warning("Skipping item #%d due to missing image asset URL(s).", idx)
            continue
        records.append(rec)
    return records


class SpotlightFeedClient:
    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0):
        """
        Params:
            session: optional requests.Session for connection reuse
            timeout: per-request timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_feed(self, url: str) -> List[RemoteAdRecord]:
        """
        GET the feed and decode it. An envelope without items yields [].

        Raises:
            FetchError: transport failure or non-2xx status
            DecodeError: response body is not a usable envelope
        """
        try:
            r = self.session.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"feed request failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise FetchError(f"feed returned HTTP {r.status_code}: {r.text[:200]}", status_code=r.status_code)

        try:
            doc = r.json()
        except ValueError as e:
            raise DecodeError(f"feed body is not JSON: {e}") from e
        return parse_envelope(doc)
