"""
Playback controller for musicbox.

Owns the single playback session: resolves a playable source for a track,
drives the streaming controller, and advances through the queue when a
track finishes.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .catalog import CatalogClient
from .errors import MusicboxError, NoSourceAvailable, PlaybackFailed
from .models import StreamTarget, Track
from .notifications import NotificationCenter
from .queue import PlaybackQueue, Playlist

# Listener signature: (event, payload). Events are "state_changed" (payload is
# the status dict) and "error" (payload is the exception).
Listener = Callable[[str, Any], None]


def _has_source(track: Track) -> bool:
    return track.is_local or (track.id is not None and track.id != "")


class PlaybackState(Enum):
    """Playback state enumeration."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


class PlaybackController:
    """Orchestrates playback and manages state."""

    def __init__(
        self,
        queue: PlaybackQueue,
        streaming_controller,  # StreamingController, or any engine with the same contract
        catalog_client: CatalogClient,
        notifications: Optional[NotificationCenter] = None,
        playlist: Optional[Playlist] = None,
    ):
        """
        Initialize PlaybackController.

        Args:
            queue: PlaybackQueue consumed when a track finishes
            streaming_controller: Audio engine (load_remote/load_local/pause/
                resume/stop_playback plus EOS and error callbacks)
            catalog_client: CatalogClient used to resolve stream URLs
            notifications: Where user-facing status messages go
            playlist: Playlist for play_from_playlist()
        """
        self.queue = queue
        self.streaming_controller = streaming_controller
        self.catalog_client = catalog_client
        self.notifications = notifications if notifications is not None else NotificationCenter()
        self.playlist = playlist if playlist is not None else Playlist()

        self.logger = logging.getLogger(__name__)
        self.lock = threading.Lock()

        # Session state. Only mutated with self.lock held.
        self.state = PlaybackState.IDLE
        self.current_track: Optional[Track] = None
        self.current_target: Optional[StreamTarget] = None
        self.loading_track: Optional[Track] = None
        self.last_error: Optional[MusicboxError] = None
        # Bumped by every play/stop request; a load whose generation is stale is dropped
        self._generation = 0

        self._listeners: List[Listener] = []
        self._listeners_lock = threading.Lock()

        self.streaming_controller.set_eos_callback(self.on_song_end)
        self.streaming_controller.set_error_callback(self.on_engine_error)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: Listener) -> None:
        """Register a listener for state changes and errors."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, event: str, payload: Any) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception as e:
                self.logger.error("Playback listener failed on %s: %s", event, e, exc_info=True)

    def _state_changed(self) -> None:
        self._emit("state_changed", self.get_status())

    def _report_error(self, error: MusicboxError, message: Optional[str] = None) -> None:
        self.notifications.publish(message or str(error), is_error=True)
        self._emit("error", error)
        self._state_changed()

    # =========================================================================
    # Play requests
    # =========================================================================

    def play_track(self, track: Track) -> bool:
        """
        Stop whatever is playing and start the given track.

        The newest request always wins: if another play or stop arrives while
        this one is resolving its stream, this one is dropped without ever
        reaching the engine.

        Returns:
            True if playback started, False otherwise (see last_error)
        """
        if not _has_source(track):
            error = NoSourceAvailable(f"No stream source for '{track.title}'")
            self.logger.warning("%s", error)
            with self.lock:
                self.last_error = error
            self._report_error(error, "No stream URL available. Please search first.")
            return False

        with self.lock:
            generation = self._begin_loading(track)
        return self._load(track, generation)

    def _begin_loading(self, track: Track) -> int:
        """Supersede the current session with a LOADING one. Caller holds self.lock."""
        self._generation += 1
        self._release_session()
        self.state = PlaybackState.LOADING
        self.loading_track = track
        self.last_error = None
        return self._generation

    def _load(self, track: Track, generation: int) -> bool:
        """Resolve and start a track claimed by _begin_loading."""
        self.logger.info("Loading track: %s by %s", track.title, track.artist_name)
        self._state_changed()

        # Network lookup runs without the lock so stop() and newer requests aren't blocked
        try:
            target = self._resolve_target(track)
        except MusicboxError as e:
            return self._load_failed(generation, track, e)

        error: Optional[PlaybackFailed] = None
        with self.lock:
            if generation != self._generation:
                self.logger.info("Dropping superseded request for %s", track.title)
                return False
            try:
                if target.is_remote:
                    self.streaming_controller.load_remote(target.url)
                else:
                    self.streaming_controller.load_local(target.path)
            except Exception as e:
                self.logger.error("Engine rejected %s: %s", track.title, e, exc_info=True)
                failure = e if isinstance(e, PlaybackFailed) else PlaybackFailed(str(e))
                self._set_idle(failure)
                error = failure
            else:
                self.state = PlaybackState.PLAYING
                self.current_track = track
                self.current_target = target
                self.loading_track = None

        if error is not None:
            if target.is_remote:
                self._report_error(error, f"Error loading stream: {error}")
            else:
                self._report_error(error, f"Error playing local file: {error}")
            return False

        if target.is_remote:
            self.notifications.publish(f"Streaming: {track.title}")
        else:
            self.notifications.publish(f"Playing local file: {track.title}")
        self.logger.info("Playback started: %s", track.title)
        self._state_changed()
        return True

    def play_local(self, path: str, title: Optional[str] = None) -> bool:
        """Play a file picked from the device."""
        return self.play_track(Track.from_local_path(path, title))

    def play_from_playlist(self, index: int) -> bool:
        """Play a playlist entry right away. The queue is left untouched."""
        track = self.playlist.get(index)
        if track is None:
            self.logger.warning("No playlist entry at index %s", index)
            return False
        return self.play_track(track)

    def _resolve_target(self, track: Track) -> StreamTarget:
        if not _has_source(track):
            raise NoSourceAvailable(f"No stream source for '{track.title}'")
        if track.is_local:
            return StreamTarget(path=track.local_path)
        return self.catalog_client.resolve_stream(track.id, quality=track.audio_quality)

    def _load_failed(self, generation: int, track: Track, error: MusicboxError) -> bool:
        self.logger.error("Could not resolve %s: %s", track.title, error)
        with self.lock:
            if generation != self._generation:
                # A newer request owns the session now
                return False
            self._set_idle(error)
        self._report_error(error)
        return False

    def _set_idle(self, error: MusicboxError) -> None:
        """Return to IDLE after a failure. Caller holds self.lock."""
        self.state = PlaybackState.IDLE
        self.current_track = None
        self.current_target = None
        self.loading_track = None
        self.last_error = error

    def _release_session(self) -> None:
        """Stop the engine if it holds a source. Caller holds self.lock."""
        if self.state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            try:
                self.streaming_controller.stop_playback()
            except Exception as e:
                self.logger.error("Error stopping previous track: %s", e, exc_info=True)
        self.current_track = None
        self.current_target = None
        self.loading_track = None

    # =========================================================================
    # Transport controls
    # =========================================================================

    def pause(self) -> bool:
        """
        Pause playback.

        Returns:
            True if paused, False otherwise
        """
        with self.lock:
            if self.state != PlaybackState.PLAYING:
                self.logger.debug("Not playing, cannot pause")
                return False

            self.logger.info("Pausing playback")
            try:
                self.streaming_controller.pause()
            except Exception as e:
                self.logger.error("Error pausing playback: %s", e, exc_info=True)
                return False
            self.state = PlaybackState.PAUSED

        self._state_changed()
        return True

    def resume(self) -> bool:
        """
        Resume paused playback.

        Returns:
            True if resumed, False otherwise
        """
        with self.lock:
            if self.state != PlaybackState.PAUSED:
                self.logger.debug("Not paused, cannot resume")
                return False

            self.logger.info("Resuming playback")
            try:
                self.streaming_controller.resume()
            except Exception as e:
                self.logger.error("Error resuming playback: %s", e, exc_info=True)
                return False
            self.state = PlaybackState.PLAYING

        self._state_changed()
        return True

    def toggle_pause(self) -> bool:
        """Pause if playing, resume if paused."""
        with self.lock:
            playing = self.state == PlaybackState.PLAYING
        if playing:
            return self.pause()
        return self.resume()

    def stop(self) -> bool:
        """
        Stop playback and clear the now-playing track.

        Also cancels a track that is still loading.

        Returns:
            True if something was stopped
        """
        with self.lock:
            self._generation += 1
            if self.state not in (
                PlaybackState.PLAYING,
                PlaybackState.PAUSED,
                PlaybackState.LOADING,
            ):
                self.logger.debug("Nothing to stop (state=%s)", self.state.value)
                return False

            self.logger.info("Stopping playback")
            self._release_session()
            self.state = PlaybackState.STOPPED

        self.notifications.publish("Playback stopped.")
        self._state_changed()
        return True

    def skip(self) -> bool:
        """Move on to the next queued track, as if the current one had finished."""
        with self.lock:
            if self.state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
                self.logger.debug("Nothing playing, cannot skip")
                return False
            generation = self._generation
            self.logger.info("Skipping %s", self.current_track.title if self.current_track else None)
        return self._advance(generation)

    # =========================================================================
    # Engine callbacks
    # =========================================================================

    def on_song_end(self):
        """Handle the engine's end-of-stream: play the next queued track or stop."""
        with self.lock:
            if self.state != PlaybackState.PLAYING:
                self.logger.debug("Ignoring end of stream in state %s", self.state.value)
                return
            finished = self.current_track
            generation = self._generation
        self.logger.info("Track finished: %s", finished.title if finished else None)
        self._advance(generation)

    def _advance(self, generation: int) -> bool:
        """Play the head of the queue, unless a newer request arrived since `generation`."""
        with self.lock:
            if generation != self._generation or self.state not in (
                PlaybackState.PLAYING,
                PlaybackState.PAUSED,
            ):
                self.logger.info("Session changed before advancing, leaving it alone")
                return False
            next_track = self.queue.dequeue_next()
            if next_track is None:
                self._generation += 1
                self._release_session()
                self.state = PlaybackState.STOPPED
            else:
                # Claimed in the same critical section as the dequeue
                next_generation = self._begin_loading(next_track)

        if next_track is None:
            self.logger.info("Queue empty, playback finished")
            self._state_changed()
            return False

        self.logger.info("Up next: %s", next_track.title)
        return self._load(next_track, next_generation)

    def on_engine_error(self, message: str):
        """Handle an error raised by the engine while a track was playing."""
        error = PlaybackFailed(message)
        with self.lock:
            if self.state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
                return
            self._generation += 1
            self._release_session()
            self._set_idle(error)
        self._report_error(error, f"Playback error: {message}")

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """
        Get playback status for the view.

        Returns:
            Dictionary with state, current/loading track, queue length,
            position and the last error message
        """
        with self.lock:
            state = self.state
            current = self.current_track
            loading = self.loading_track
            target = self.current_target
            error = self.last_error

        position = duration = None
        if state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            position = self.streaming_controller.get_position()
            duration = self.streaming_controller.get_duration()
            if duration is None and current is not None:
                duration = current.duration_seconds

        return {
            "state": state.value,
            "current_track": current.to_dict() if current else None,
            "loading_track": loading.to_dict() if loading else None,
            "source": ("remote" if target.is_remote else "local") if target else None,
            "position_seconds": position,
            "duration_seconds": duration,
            "queue_length": len(self.queue),
            "last_error": str(error) if error else None,
        }

    def shutdown(self):
        """Stop playback and release the engine."""
        self.logger.info("Shutting down playback controller")
        self.stop()
        try:
            self.streaming_controller.stop()
        except Exception as e:
            self.logger.error("Error stopping streaming controller: %s", e, exc_info=True)
