from __future__ import annotations

import logging
import os
import re
import threading
import uuid
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlsplit

import requests

from common.utils import remove_quietly
from spotlight_cache.errors import AssetDownloadError, CancelledError


log = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
CHUNK_SIZE = 64 * 1024

# Union of what Windows and POSIX reject in a file name, plus control chars.
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def filename_from_url(url: str) -> str:
    """
    Local filename for an asset URL: the last path segment with illegal
    characters replaced by '_'. Falls back to '<uuid4>.jpg' when the URL does
    not parse or has no usable last segment.
    """
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url!r}")
        segment = unquote(parts.path).replace("\\", "/").rsplit("/", 1)[-1]
    except ValueError:
        log.debug("Could not derive a filename from %s; using a random name", url)
        return f"{uuid.uuid4()}.jpg"

    name = "_".join(_ILLEGAL_FILENAME_CHARS.split(segment))
    if name.strip(". ") == "":
        return f"{uuid.uuid4()}.jpg"
    return name


def compressed_filename(original: str, quality: int) -> str:
    """'abc.jpg' -> 'abc_q75.jpg'"""
    p = Path(original)
    return f"{p.stem}_q{int(quality)}{p.suffix}"


class AssetFetcher:
    """
    Idempotent image downloader.

    A file at the destination means "already cached": no request is made.
    Bodies are streamed to `<dest>.tmp` and renamed into place, so a reader
    of `dest` never sees a half-written file.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def ensure_downloaded(
        self,
        url: str,
        dest: Union[str, Path],
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """True if `dest` exists afterwards. Never raises."""
        dest = Path(dest)
        if dest.is_file():
            return True
        log.info("Downloading image: %s to %s", url, dest.name)
        try:
            self.download(url, dest, cancel)
        except CancelledError:
            log.info("Download cancelled for %s", url)
            return False
        except AssetDownloadError as e:
            log.warning("Failed to download image %s: %s", url, e)
            return False
        log.debug("Successfully downloaded %s", dest.name)
        return True

    def download(self, url: str, dest: Path, cancel: Optional[threading.Event] = None) -> None:
        """
        Stream `url` into `dest` via a temp file.

        Raises:
            AssetDownloadError: HTTP status, transport or file system failure
            CancelledError: `cancel` was set while streaming
        """
        tmp = dest.with_name(dest.name + TEMP_SUFFIX)
        done = False
        try:
            try:
                r = self.session.get(url, headers={"Accept": "image/*"}, stream=True, timeout=self.timeout)
            except requests.RequestException as e:
                raise AssetDownloadError(f"request failed: {e}") from e
            try:
                if not 200 <= r.status_code < 300:
                    raise AssetDownloadError(f"HTTP status {r.status_code}")
                with open(tmp, "wb") as f:
                    for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                        if cancel is not None and cancel.is_set():
                            raise CancelledError(url)
                        if chunk:
                            f.write(chunk)
            except requests.RequestException as e:
                raise AssetDownloadError(f"transfer failed: {e}") from e
            except OSError as e:
                raise AssetDownloadError(f"write failed: {e}") from e
            finally:
                r.close()

            try:
                os.replace(tmp, dest)
            except OSError as e:
                raise AssetDownloadError(f"rename failed: {e}") from e
            done = True
        finally:
            if not done:
                remove_quietly(tmp)
