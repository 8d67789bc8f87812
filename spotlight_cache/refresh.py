from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.types import CacheEntry, RemoteAdRecord
from common.utils import iso_now_ms
from spotlight_cache.asset_fetcher import AssetFetcher, compressed_filename, filename_from_url
from spotlight_cache.cache_store import CacheStore
from spotlight_cache.errors import CancelledError, DecodeError, FetchError
from spotlight_cache.feed_client import SpotlightFeedClient, resolve_copyright
from spotlight_cache.transcoder import ImageTranscoder


log = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one cycle, exposed on /health."""
    started_at: str
    finished_at: Optional[str] = None
    # ok | empty_feed | fetch_failed | cancelled | error
    status: str = "running"
    records: int = 0
    entries: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RefreshOrchestrator:
    """
    One refresh cycle: feed -> downloads -> transcodes -> store swap -> persist.

    `refresh()` never raises. Any failure before the swap leaves the store
    (and its file) exactly as it was.
    """

    def __init__(
        self,
        *,
        feed_url: str,
        store: CacheStore,
        image_dir: Path,
        feed_client: SpotlightFeedClient,
        fetcher: AssetFetcher,
        transcoder: Optional[ImageTranscoder] = None,
    ):
        self.feed_url = feed_url
        self.store = store
        self.image_dir = Path(image_dir)
        self.feed_client = feed_client
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.last_result: Optional[RefreshResult] = None

    def refresh(self, cancel: Optional[threading.Event] = None) -> RefreshResult:
        cancel = cancel or threading.Event()
        result = RefreshResult(started_at=iso_now_ms())
        self.last_result = result
        log.info("Starting Spotlight data fetch...")
        try:
            result.status = self._run(cancel, result)
        except CancelledError:
            log.info("Spotlight data fetch cancelled.")
            result.status = "cancelled"
        except Exception:
            log.exception("Unexpected error during Spotlight data fetch.")
            result.status = "error"
        result.finished_at = iso_now_ms()
        return result

    # -------- internals --------

    def _run(self, cancel: threading.Event, result: RefreshResult) -> str:
        try:
            records = self.feed_client.fetch_feed(self.feed_url)
        except (FetchError, DecodeError) as e:
            log.error("Error fetching Spotlight feed: %s", e)
            return "fetch_failed"

        result.records = len(records)
        if not records:
            log.warning("Received empty or invalid item list from Spotlight API.")
            return "empty_feed"

        entries: List[CacheEntry] = []
        for rec in records:
            if cancel.is_set():
                raise CancelledError("cancelled between records")
            try:
                entry = self.build_entry(rec, cancel)
            except CancelledError:
                raise
            except Exception:
                log.exception("Error processing spotlight item %s", rec.landscape_url)
                continue
            if entry is not None:
                entries.append(entry)

        # a cycle cut short keeps the last complete snapshot
        if cancel.is_set():
            raise CancelledError("cancelled before cache swap")

        self.store.replace(entries)
        self.store.persist()
        result.entries = len(entries)
        log.info("Spotlight data fetch and cache update complete. Cached %d items.", len(entries))
        return "ok"

    def build_entry(self, rec: RemoteAdRecord, cancel: threading.Event) -> Optional[CacheEntry]:
        """
        Download, transcode and describe one record.
        Returns None when either original is missing after the download attempts.
        """
        landscape_name = filename_from_url(rec.landscape_url)
        portrait_name = filename_from_url(rec.portrait_url)
        landscape_path = self.image_dir / landscape_name
        portrait_path = self.image_dir / portrait_name

        self.fetcher.ensure_downloaded(rec.landscape_url, landscape_path, cancel)
        self.fetcher.ensure_downloaded(rec.portrait_url, portrait_path, cancel)

        if cancel.is_set():
            raise CancelledError("cancelled after downloads")

        if not (landscape_path.is_file() and portrait_path.is_file()):
            log.warning(
                "Skipping item metadata for %s / %s as original file(s) not found after download attempt.",
                rec.landscape_url,
                rec.portrait_url,
            )
            return None

        landscape_q = self._compress(landscape_name, cancel)
        portrait_q = self._compress(portrait_name, cancel)

        return CacheEntry(
            landscape_url=rec.landscape_url,
            portrait_url=rec.portrait_url,
            landscape_path=landscape_name,
            portrait_path=portrait_name,
            landscape_path_compressed=landscape_q,
            portrait_path_compressed=portrait_q,
            copyright=resolve_copyright(rec.copyright, rec.icon_hover_text),
            title=rec.title,
        )

    def _compress(self, original: str, cancel: threading.Event) -> Optional[str]:
        if self.transcoder is None:
            return None
        name = compressed_filename(original, self.transcoder.quality)
        ok = self.transcoder.ensure_compressed(self.image_dir / original, self.image_dir / name, cancel)
        return name if ok else None
