"""
Unit tests for the image transcoder
"""

import os
import sys
import threading

import pytest
from PIL import Image

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from spotlight_cache.transcoder import ImageTranscoder


def _write_image(path, mode="RGB", size=(64, 48)):
    color = (10, 120, 200, 128) if mode == "RGBA" else (10, 120, 200)
    Image.new(mode, size, color[: len(mode)]).save(path)
    return path


class TestImageTranscoder:
    """ensure_compressed semantics"""

    def test_compresses_to_jpeg(self, tmp_path):
        """Output is a JPEG with the source dimensions"""
        src = _write_image(tmp_path / "a.png")
        dest = tmp_path / "a_q75.png"
        before = src.read_bytes()

        assert ImageTranscoder(75).ensure_compressed(src, dest) is True

        with Image.open(dest) as im:
            assert im.format == "JPEG"
            assert im.size == (64, 48)
        assert src.read_bytes() == before
        assert not (tmp_path / "a_q75.png.tmp").exists()

    def test_alpha_is_flattened(self, tmp_path):
        """RGBA sources are converted before JPEG encoding"""
        src = _write_image(tmp_path / "a.png", mode="RGBA")
        dest = tmp_path / "a_q50.png"

        assert ImageTranscoder(50).ensure_compressed(src, dest) is True
        with Image.open(dest) as im:
            assert im.mode == "RGB"

    def test_existing_output_is_kept(self, tmp_path):
        """Existing variant is not re-encoded"""
        src = _write_image(tmp_path / "a.jpg")
        dest = tmp_path / "a_q75.jpg"
        dest.write_bytes(b"already here")

        assert ImageTranscoder(75).ensure_compressed(src, dest) is True
        assert dest.read_bytes() == b"already here"

    def test_corrupt_source(self, tmp_path):
        """Undecodable input -> False and no output file"""
        src = tmp_path / "broken.jpg"
        src.write_bytes(b"\xff\xd8 definitely not a jpeg")
        dest = tmp_path / "broken_q75.jpg"

        assert ImageTranscoder(75).ensure_compressed(src, dest) is False
        assert not dest.exists()
        assert not (tmp_path / "broken_q75.jpg.tmp").exists()

    def test_missing_source(self, tmp_path):
        """Missing input is a failure, not an exception"""
        assert ImageTranscoder(75).ensure_compressed(tmp_path / "nope.jpg", tmp_path / "nope_q75.jpg") is False

    def test_cancelled(self, tmp_path):
        """A set cancel event prevents publishing the output"""
        src = _write_image(tmp_path / "a.jpg")
        dest = tmp_path / "a_q75.jpg"
        cancel = threading.Event()
        cancel.set()

        assert ImageTranscoder(75).ensure_compressed(src, dest, cancel) is False
        assert not dest.exists()

    def test_quality_range(self):
        """Quality outside 0..100 is rejected"""
        with pytest.raises(ValueError):
            ImageTranscoder(101)

    def test_pillow_error_outside_oserror(self, tmp_path, monkeypatch):
        """DecompressionBombError is reported as a failure, not raised"""
        src = _write_image(tmp_path / "a.png")
        dest = tmp_path / "a_q75.png"
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        assert ImageTranscoder(75).ensure_compressed(src, dest) is False
        assert not dest.exists()
        assert not (tmp_path / "a_q75.png.tmp").exists()
