"""
Data models for musicbox.

Defines typed dataclasses for catalog tracks and playable stream targets.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
LOCAL_ARTIST = "Local File"


@dataclass(frozen=True)
class Track:
    """A catalog entry, or a local file wrapped as one."""

    id: Optional[Union[int, str]]  # Catalog id, None for local files
    title: str = UNKNOWN_TITLE
    artist_name: str = UNKNOWN_ARTIST
    album_title: Optional[str] = None
    cover_id: Optional[str] = None
    duration_seconds: Optional[int] = None
    audio_quality: Optional[str] = None  # Passed through to the resolve call
    local_path: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return bool(self.local_path)

    @classmethod
    def from_local_path(cls, path: str, title: Optional[str] = None) -> "Track":
        """Build a track for a file picked from the device."""
        return cls(
            id=None,
            title=title or Path(path).name,
            artist_name=LOCAL_ARTIST,
            local_path=path,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist_name": self.artist_name,
            "album_title": self.album_title,
            "cover_id": self.cover_id,
            "duration_seconds": self.duration_seconds,
            "audio_quality": self.audio_quality,
            "local_path": self.local_path,
        }


@dataclass(frozen=True)
class StreamTarget:
    """Resolved playable source: a remote URL or a local path, never both."""

    url: Optional[str] = None
    path: Optional[str] = None

    def __post_init__(self):
        if bool(self.url) == bool(self.path):
            raise ValueError("StreamTarget needs exactly one of url or path")

    @property
    def is_remote(self) -> bool:
        return self.url is not None
