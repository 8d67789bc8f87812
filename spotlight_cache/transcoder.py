from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from common.utils import remove_quietly
from spotlight_cache.errors import CancelledError, TranscodeError


log = logging.getLogger(__name__)

# JPEG has no alpha/palette; everything else is flattened to RGB first.
_JPEG_MODES = ("RGB", "L", "CMYK")


class ImageTranscoder:
    """Re-encode cached originals as JPEG at a fixed quality."""

    def __init__(self, quality: int = 75):
        if not 0 <= int(quality) <= 100:
            raise ValueError(f"quality must be within 0..100, got {quality}")
        self.quality = int(quality)

    def ensure_compressed(
        self,
        src: Union[str, Path],
        dest: Union[str, Path],
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """True if `dest` exists afterwards. `src` is only read. Never raises."""
        src, dest = Path(src), Path(dest)
        if dest.exists():
            log.debug("Compressed image %s already exists. Skipping compression.", dest.name)
            return True

        log.info("Compressing %s to %s (Quality: %d)...", src.name, dest.name, self.quality)
        try:
            self.transcode(src, dest, cancel)
        except CancelledError:
            log.info("Compression cancelled for %s", src.name)
            return False
        except TranscodeError:
            log.exception("Failed to compress image %s to %s", src.name, dest.name)
            return False
        log.debug("Successfully compressed %s to %s", src.name, dest.name)
        return True

    def transcode(self, src: Path, dest: Path, cancel: Optional[threading.Event] = None) -> None:
        """
        Decode `src`, encode JPEG into `<dest>.tmp`, rename onto `dest`.

        Raises:
            TranscodeError: unreadable source, decode or encode failure
            CancelledError: `cancel` was set before the result was published
        """
        tmp = dest.with_name(dest.name + ".tmp")
        done = False
        try:
            try:
                with Image.open(src) as im:
                    im.load()
                    if cancel is not None and cancel.is_set():
                        raise CancelledError(str(src))
                    out = im if im.mode in _JPEG_MODES else im.convert("RGB")
                    out.save(tmp, format="JPEG", quality=self.quality, optimize=True)
            except CancelledError:
                raise
            # Pillow raises outside OSError too (DecompressionBombError, SyntaxError from plugins)
            except Exception as e:
                raise TranscodeError(f"{src.name}: {e}") from e

            if cancel is not None and cancel.is_set():
                raise CancelledError(str(src))
            try:
                os.replace(tmp, dest)
            except OSError as e:
                raise TranscodeError(f"rename failed: {e}") from e
            done = True
        finally:
            if not done:
                remove_quietly(tmp)
