"""
Search session for musicbox.

Keeps the result set the view is showing. Searches may overlap; whichever
response arrives last replaces the displayed results together with its query.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .catalog import CatalogClient
from .errors import SearchFailed
from .models import Track
from .notifications import NotificationCenter


@dataclass(frozen=True)
class SearchResults:
    """Immutable snapshot of a query and the tracks it returned."""

    query: str = ""
    tracks: Tuple[Track, ...] = field(default_factory=tuple)
    error: Optional[str] = None  # Set on failed searches, which are never displayed

    def to_dict(self) -> dict:
        return {"query": self.query, "tracks": [t.to_dict() for t in self.tracks]}


class SearchSession:
    """Runs catalog searches and holds the displayed result set."""

    def __init__(self, catalog_client: CatalogClient, notifications: NotificationCenter):
        self.catalog_client = catalog_client
        self.notifications = notifications
        self.logger = logging.getLogger(__name__)
        self._results = SearchResults()
        self._lock = threading.Lock()

    def search(self, query: str, base_url: Optional[str] = None) -> SearchResults:
        """
        Search and publish the results.

        Blank queries are ignored. On failure the previous results stay on
        display, a notification is published and an empty snapshot returned.
        """
        query = (query or "").strip()
        if not query:
            return SearchResults()

        try:
            tracks = self.catalog_client.search(query, base_url=base_url)
        except SearchFailed as e:
            self.logger.error("Search for %r failed (%s): %s", query, e.kind, e)
            self.notifications.publish(str(e), is_error=True)
            return SearchResults(query=query, error=str(e))

        results = SearchResults(query=query, tracks=tuple(tracks))
        with self._lock:
            self._results = results

        if not tracks:
            self.notifications.publish(f"No results found for '{query}'.", is_error=True)
        return results

    def get_results(self) -> SearchResults:
        with self._lock:
            return self._results

    def get_track(self, index: int) -> Optional[Track]:
        """Look up a track in the displayed results by position."""
        results = self.get_results()
        if 0 <= index < len(results.tracks):
            return results.tracks[index]
        return None
