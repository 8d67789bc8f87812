"""
Error taxonomy for the refresh pipeline.

All of these are contained inside the refresh orchestrator; none of them
reaches the scheduler loop.
"""


class SpotlightError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(SpotlightError):
    """Invalid or missing configuration; raised at start-up only."""


class FetchError(SpotlightError):
    """Feed unreachable or returned a non-success status. Cycle aborted."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(SpotlightError):
    """Malformed feed envelope (cycle aborted) or inner item (item skipped)."""


class AssetDownloadError(SpotlightError):
    """Network or I/O failure fetching an image; the asset counts as absent."""


class TranscodeError(SpotlightError):
    """Decode/encode failure; the compressed variant is omitted."""


class PersistError(SpotlightError):
    """Cache file could not be written; the in-memory snapshot is still valid."""


class CancelledError(SpotlightError):
    """Shutdown was signalled while work was in flight."""
