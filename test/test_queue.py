"""
Unit tests for PlaybackQueue and Playlist.
"""

import threading

import pytest

from musicbox.models import Track
from musicbox.queue import PlaybackQueue, Playlist


def _track(track_id):
    return Track(id=track_id, title=f"Song {track_id}", artist_name="Artist")


@pytest.fixture
def queue():
    return PlaybackQueue()


@pytest.fixture
def playlist():
    return Playlist(name="Favourites")


# =========================================================================
# PlaybackQueue
# =========================================================================


def test_empty_queue(queue):
    assert len(queue) == 0
    assert queue.peek_all() == []
    assert queue.dequeue_next() is None


def test_enqueue_returns_length(queue):
    assert queue.enqueue(_track(1)) == 1
    assert queue.enqueue(_track(2)) == 2
    assert len(queue) == 2


def test_dequeue_is_fifo(queue):
    """Tracks come out in the order they were queued."""
    for track_id in (1, 2, 3):
        queue.enqueue(_track(track_id))

    out = [queue.dequeue_next().id for _ in range(3)]

    assert out == [1, 2, 3]
    assert queue.dequeue_next() is None


def test_interleaved_enqueue_dequeue(queue):
    queue.enqueue(_track(1))
    queue.enqueue(_track(2))
    assert queue.dequeue_next().id == 1
    queue.enqueue(_track(3))

    assert [t.id for t in queue.peek_all()] == [2, 3]


def test_duplicates_allowed(queue):
    track = _track(1)
    queue.enqueue(track)
    queue.enqueue(track)

    assert queue.peek_all() == [track, track]


def test_peek_all_is_snapshot(queue):
    queue.enqueue(_track(1))
    snapshot = queue.peek_all()
    snapshot.clear()

    assert len(queue) == 1


def test_remove(queue):
    for track_id in (1, 2, 3):
        queue.enqueue(_track(track_id))

    assert queue.remove(1) is True
    assert [t.id for t in queue.peek_all()] == [1, 3]


@pytest.mark.parametrize("index", [-1, 3, 100])
def test_remove_out_of_range(queue, index):
    for track_id in (1, 2, 3):
        queue.enqueue(_track(track_id))

    assert queue.remove(index) is False
    assert len(queue) == 3


def test_clear(queue):
    queue.enqueue(_track(1))
    queue.enqueue(_track(2))

    assert queue.clear() == 2
    assert len(queue) == 0
    assert queue.clear() == 0


def test_concurrent_enqueue(queue):
    """Concurrent producers never lose tracks."""

    def producer(offset):
        for i in range(100):
            queue.enqueue(_track(offset + i))

    threads = [threading.Thread(target=producer, args=(n * 1000,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(queue) == 400
    ids = [t.id for t in queue.peek_all()]
    assert len(set(ids)) == 400


def test_concurrent_dequeue_hands_out_each_track_once(queue):
    for track_id in range(200):
        queue.enqueue(_track(track_id))
    taken = []
    taken_lock = threading.Lock()

    def consumer():
        while True:
            track = queue.dequeue_next()
            if track is None:
                return
            with taken_lock:
                taken.append(track.id)

    threads = [threading.Thread(target=consumer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(taken) == list(range(200))


# =========================================================================
# Playlist
# =========================================================================


def test_playlist_add_returns_index(playlist):
    assert playlist.add(_track(1)) == 0
    assert playlist.add(_track(2)) == 1
    assert len(playlist) == 2
    assert playlist.name == "Favourites"


def test_playlist_get(playlist):
    playlist.add(_track(1))

    assert playlist.get(0).id == 1
    assert playlist.get(1) is None
    assert playlist.get(-1) is None


def test_playlist_remove(playlist):
    for track_id in (1, 2, 3):
        playlist.add(_track(track_id))

    assert playlist.remove(0) is True
    assert [t.id for t in playlist.get_all()] == [2, 3]
    assert playlist.remove(5) is False


def test_playlist_clear(playlist):
    playlist.add(_track(1))

    assert playlist.clear() == 1
    assert playlist.get_all() == []


def test_empty_playlist_is_falsy_but_usable(playlist):
    assert not playlist
    playlist.add(_track(1))
    assert playlist
