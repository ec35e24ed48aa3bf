"""
Remote catalog client for musicbox.

Searches the catalog backend and exchanges track ids for stream URLs.
The backend is a plain JSON-over-HTTP API rooted at a configurable base URL.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Union

import requests

from .errors import ResolveFailed, SearchFailed
from .models import UNKNOWN_ARTIST, UNKNOWN_TITLE, StreamTarget, Track

if TYPE_CHECKING:
    from .config_manager import ConfigManager

STREAM_URL_FIELD = "OriginalTrackUrl"
DEFAULT_QUALITY = "HI_RES"

# Index of the element carrying the stream URL in array-shaped resolve responses
ARRAY_STREAM_INDEX = 2


def parse_track(item: dict) -> Track:
    """
    Map one element of a search response to a Track.

    Missing display fields fall back to placeholders; a missing or malformed
    artist object never raises.
    """
    artist = item.get("artist")
    artist_name = artist.get("name") if isinstance(artist, dict) else None

    album = item.get("album")
    if not isinstance(album, dict):
        album = {}

    title = item.get("title")
    cover = album.get("cover")
    album_title = album.get("title")

    return Track(
        id=item.get("id"),
        title=str(title) if title else UNKNOWN_TITLE,
        artist_name=str(artist_name) if artist_name else UNKNOWN_ARTIST,
        album_title=str(album_title) if album_title else None,
        cover_id=str(cover) if cover else None,
        duration_seconds=_parse_duration(item.get("duration")),
        audio_quality=item.get("audioQuality") or None,
    )


def _parse_duration(value: Any) -> Optional[int]:
    """Duration in whole seconds, or None for missing/garbage values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def extract_stream_url(data: Any) -> Optional[str]:
    """
    Find the stream URL in a resolve response.

    Accepts both backend shapes: a single object carrying the URL field, or
    an array whose third element carries it. For arrays, index 2 is checked
    first and the remaining elements after it, in order.
    """
    if isinstance(data, dict):
        candidates = [data]
    elif isinstance(data, list):
        candidates = list(data)
        if len(data) > ARRAY_STREAM_INDEX:
            candidates.insert(0, data[ARRAY_STREAM_INDEX])
    else:
        return None

    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        url = candidate.get(STREAM_URL_FIELD)
        if isinstance(url, str) and url.strip():
            return url.strip()
    return None


class CatalogClient:
    """HTTP client for the catalog backend's search and stream lookup endpoints."""

    def __init__(self, config_manager: "ConfigManager"):
        """
        Initialize CatalogClient.

        Args:
            config_manager: ConfigManager for base URL, timeout and quality defaults
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager

    def _base_url(self, base_url: Optional[str]) -> str:
        base = base_url if base_url is not None else self.config_manager.get("api_base_url")
        return (base or "").strip().rstrip("/")

    def _timeout(self) -> float:
        return self.config_manager.get_float("http_timeout_seconds", 15.0)

    def search(self, query: str, base_url: Optional[str] = None) -> List[Track]:
        """
        Search the catalog.

        Args:
            query: Free-text search; blank queries return [] without a request
            base_url: Backend root (defaults to the api_base_url config value)

        Returns:
            Tracks in response order

        Raises:
            SearchFailed: kind "http" for non-200 responses, "network" for
                transport errors and undecodable bodies
        """
        query = (query or "").strip()
        if not query:
            return []

        base = self._base_url(base_url)
        if not base:
            raise SearchFailed(SearchFailed.NETWORK, "No catalog API URL configured")

        url = f"{base}/search/"
        self.logger.debug("Searching catalog: %s (query=%s)", url, query)

        try:
            response = requests.get(url, params={"s": query}, timeout=self._timeout())
        except requests.RequestException as e:
            raise SearchFailed(
                SearchFailed.NETWORK, f"Network error during search: {e}"
            ) from e

        if response.status_code != 200:
            raise SearchFailed(
                SearchFailed.HTTP,
                f"Search API failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SearchFailed(SearchFailed.NETWORK, f"Invalid search response: {e}") from e

        if not isinstance(data, dict):
            raise SearchFailed(SearchFailed.NETWORK, "Invalid search response: expected an object")

        items = data.get("items")
        if not isinstance(items, list):
            self.logger.info("Search response for %r carried no items", query)
            return []

        tracks = [parse_track(item) for item in items if isinstance(item, dict)]
        self.logger.info("Found %s tracks for query: %s", len(tracks), query)
        return tracks

    def resolve_stream(
        self,
        track_id: Union[int, str],
        quality: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> StreamTarget:
        """
        Exchange a track id for a time-limited stream URL.

        Args:
            track_id: Catalog track id
            quality: Quality tier (defaults to the default_quality config value)
            base_url: Backend root (defaults to the api_base_url config value)

        Returns:
            Remote StreamTarget

        Raises:
            ResolveFailed: kind "http", "network" or "missing_url"
        """
        base = self._base_url(base_url)
        if not base:
            raise ResolveFailed(ResolveFailed.NETWORK, "No catalog API URL configured")

        endpoint = (self.config_manager.get("resolve_endpoint") or "song").strip("/")
        quality = quality or self.config_manager.get("default_quality") or DEFAULT_QUALITY
        url = f"{base}/{endpoint}/"
        self.logger.debug("Resolving stream for track %s via %s (quality=%s)", track_id, url, quality)

        try:
            response = requests.get(
                url, params={"id": track_id, "quality": quality}, timeout=self._timeout()
            )
        except requests.RequestException as e:
            raise ResolveFailed(
                ResolveFailed.NETWORK, f"Network error fetching stream link: {e}"
            ) from e

        if response.status_code != 200:
            raise ResolveFailed(
                ResolveFailed.HTTP,
                f"Song API failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ResolveFailed(
                ResolveFailed.NETWORK, f"Invalid stream lookup response: {e}"
            ) from e

        stream_url = extract_stream_url(data)
        if not stream_url:
            raise ResolveFailed(ResolveFailed.MISSING_URL, "Stream URL not found in response.")

        self.logger.info("Resolved stream for track %s", track_id)
        return StreamTarget(url=stream_url)
