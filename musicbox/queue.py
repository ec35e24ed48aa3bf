"""
Queue management for musicbox.

Holds the pending-track queue and the user-curated playlist. Both live in
memory only and every operation is atomic with respect to the others.
"""

import logging
import threading
from collections import deque
from typing import Deque, List, Optional

from .models import Track


class PlaybackQueue:
    """FIFO of tracks waiting to be played.

    The queue only ever holds pending tracks: the controller removes a track
    from the head before it starts playing it. Enqueueing and dequeueing
    never start playback by themselves.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._items: Deque[Track] = deque()
        self._lock = threading.Lock()

    def enqueue(self, track: Track) -> int:
        """
        Add a track to the end of the queue.

        Returns:
            New queue length
        """
        with self._lock:
            self._items.append(track)
            length = len(self._items)
        self.logger.info("Queued: %s by %s (position %s)", track.title, track.artist_name, length)
        return length

    def dequeue_next(self) -> Optional[Track]:
        """Remove and return the head of the queue, or None when empty."""
        with self._lock:
            if not self._items:
                return None
            track = self._items.popleft()
        self.logger.debug("Dequeued: %s", track.title)
        return track

    def peek_all(self) -> List[Track]:
        """Snapshot of the queue in play order."""
        with self._lock:
            return list(self._items)

    def remove(self, index: int) -> bool:
        """Remove the track at a queue position."""
        with self._lock:
            if not 0 <= index < len(self._items):
                return False
            track = self._items[index]
            del self._items[index]
        self.logger.info("Removed from queue: %s", track.title)
        return True

    def clear(self) -> int:
        """Empty the queue. Returns the number of tracks removed."""
        with self._lock:
            count = len(self._items)
            self._items.clear()
        if count:
            self.logger.info("Cleared %s tracks from queue", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Playlist:
    """Ordered, user-curated track list. Duplicates are allowed."""

    def __init__(self, name: str = "Playlist"):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._tracks: List[Track] = []
        self._lock = threading.Lock()

    def add(self, track: Track) -> int:
        """Append a track. Returns its index."""
        with self._lock:
            self._tracks.append(track)
            index = len(self._tracks) - 1
        self.logger.info("Added to %s: %s", self.name, track.title)
        return index

    def remove(self, index: int) -> bool:
        with self._lock:
            if not 0 <= index < len(self._tracks):
                return False
            track = self._tracks.pop(index)
        self.logger.info("Removed from %s: %s", self.name, track.title)
        return True

    def get(self, index: int) -> Optional[Track]:
        with self._lock:
            if 0 <= index < len(self._tracks):
                return self._tracks[index]
            return None

    def get_all(self) -> List[Track]:
        with self._lock:
            return list(self._tracks)

    def clear(self) -> int:
        with self._lock:
            count = len(self._tracks)
            self._tracks.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracks)
