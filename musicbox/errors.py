"""
Error taxonomy for musicbox.

Failures are raised at the boundary where they happen and recovered by the
search session, the playback controller, or the web layer.
"""

from typing import Optional


class MusicboxError(Exception):
    """Base class for all musicbox failures."""


class SearchFailed(MusicboxError):
    """Catalog search failed. ``kind`` is "http" or "network"."""

    HTTP = "http"
    NETWORK = "network"

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class ResolveFailed(MusicboxError):
    """Stream resolution failed. ``kind`` is "http", "network" or "missing_url"."""

    HTTP = "http"
    NETWORK = "network"
    MISSING_URL = "missing_url"

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class PlaybackFailed(MusicboxError):
    """The audio engine rejected the source."""


class NoSourceAvailable(MusicboxError):
    """Play was requested for a track with neither a local path nor a catalog id."""


class FileSelectionCancelled(MusicboxError):
    """The user dismissed the file picker. A no-op outcome, not a failure."""
