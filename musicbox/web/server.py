"""
FastAPI web server for musicbox.

Provides the REST API a view layer uses for search, playback control,
queue and playlist management.
"""

import logging
from typing import Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from ..config_manager import CONFIG_SCHEMA, ConfigManager
from ..errors import FileSelectionCancelled
from ..local_files import LocalFileSelector
from ..models import Track
from ..notifications import NotificationCenter
from ..playback import PlaybackController
from ..queue import PlaybackQueue, Playlist
from ..search import SearchSession

logger = logging.getLogger(__name__)


# Request models
class TrackRequest(BaseModel):
    """A track as the view knows it, from search results or a playlist."""

    id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    artist_name: Optional[str] = None
    album_title: Optional[str] = None
    cover_id: Optional[str] = None
    duration_seconds: Optional[int] = None
    audio_quality: Optional[str] = None

    def to_track(self) -> Track:
        fields = {k: v for k, v in self.model_dump().items() if v is not None}
        return Track(id=fields.pop("id", None), **fields)


class PlayRequest(BaseModel):
    """Play either a displayed search result (by index) or an explicit track."""

    result_index: Optional[int] = None
    track: Optional[TrackRequest] = None


class LocalPlayRequest(BaseModel):
    path: Optional[str] = None  # None means the picker was dismissed


class ConfigUpdateRequest(BaseModel):
    key: str
    value: str


# Dependency to get components
def get_config_manager(request: Request) -> ConfigManager:
    """Get ConfigManager from app state."""
    return request.app.state.config_manager


def get_search_session(request: Request) -> SearchSession:
    """Get SearchSession from app state."""
    return request.app.state.search_session


def get_playback_controller(request: Request) -> PlaybackController:
    """Get PlaybackController from app state."""
    return request.app.state.playback_controller


def get_queue(request: Request) -> PlaybackQueue:
    """Get PlaybackQueue from app state."""
    return request.app.state.queue


def get_playlist(request: Request) -> Playlist:
    """Get Playlist from app state."""
    return request.app.state.playlist


def get_file_selector(request: Request) -> LocalFileSelector:
    """Get LocalFileSelector from app state."""
    return request.app.state.file_selector


def get_notifications(request: Request) -> NotificationCenter:
    """Get NotificationCenter from app state."""
    return request.app.state.notifications


def _resolve_track(request_data: PlayRequest, search: SearchSession) -> Track:
    """Turn a play/queue request into a Track, or raise an HTTP error."""
    if request_data.result_index is not None:
        track = search.get_track(request_data.result_index)
        if track is None:
            raise HTTPException(status_code=404, detail="Search result not found")
        return track
    if request_data.track is not None:
        return request_data.track.to_track()
    raise HTTPException(status_code=400, detail="Provide result_index or track")


def create_app(
    config_manager: ConfigManager,
    search_session: SearchSession,
    playback_controller: PlaybackController,
    file_selector: LocalFileSelector,
    notifications: NotificationCenter,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        config_manager: ConfigManager instance
        search_session: SearchSession instance
        playback_controller: PlaybackController instance (owns queue and playlist)
        file_selector: LocalFileSelector instance
        notifications: NotificationCenter shared by all components

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="musicbox", version="1.0.0")

    # Store components in app state
    app.state.config_manager = config_manager
    app.state.search_session = search_session
    app.state.playback_controller = playback_controller
    app.state.queue = playback_controller.queue
    app.state.playlist = playback_controller.playlist
    app.state.file_selector = file_selector
    app.state.notifications = notifications

    # Search endpoints
    @app.get("/api/search")
    def search(q: str, search_session: SearchSession = Depends(get_search_session)):
        """Search the catalog. Overlapping searches race; the last response is displayed."""
        results = search_session.search(q)
        if results.error:
            raise HTTPException(status_code=502, detail=results.error)
        return results.to_dict()

    @app.get("/api/search/results")
    async def get_search_results(search_session: SearchSession = Depends(get_search_session)):
        """Get the result set currently on display."""
        return search_session.get_results().to_dict()

    # Playback endpoints
    @app.get("/api/playback/status")
    async def get_playback_status(
        playback: PlaybackController = Depends(get_playback_controller),
    ):
        """Get current playback status."""
        return playback.get_status()

    @app.post("/api/playback/play")
    def play(
        request_data: PlayRequest,
        playback: PlaybackController = Depends(get_playback_controller),
        search_session: SearchSession = Depends(get_search_session),
    ):
        """Resolve and play a track now, replacing whatever is playing."""
        track = _resolve_track(request_data, search_session)
        if not playback.play_track(track):
            detail = str(playback.last_error) if playback.last_error else "Failed to start playback"
            raise HTTPException(status_code=400, detail=detail)
        return {"status": "playing", "track": track.to_dict()}

    @app.post("/api/playback/play-local")
    def play_local(
        request_data: LocalPlayRequest,
        playback: PlaybackController = Depends(get_playback_controller),
        selector: LocalFileSelector = Depends(get_file_selector),
    ):
        """Play a file picked from the local music directory."""
        try:
            path = selector.select(request_data.path)
        except FileSelectionCancelled as e:
            logger.info("Local file selection cancelled: %s", e)
            return {"status": "cancelled"}

        if not playback.play_local(path):
            detail = str(playback.last_error) if playback.last_error else "Failed to start playback"
            raise HTTPException(status_code=400, detail=detail)
        return {"status": "playing", "path": path}

    @app.post("/api/playback/pause")
    async def pause(playback: PlaybackController = Depends(get_playback_controller)):
        """Pause playback."""
        if playback.pause():
            return {"status": "paused"}
        raise HTTPException(status_code=400, detail="Failed to pause")

    @app.post("/api/playback/resume")
    async def resume(playback: PlaybackController = Depends(get_playback_controller)):
        """Resume paused playback."""
        if playback.resume():
            return {"status": "playing"}
        raise HTTPException(status_code=400, detail="Failed to resume")

    @app.post("/api/playback/stop")
    async def stop(playback: PlaybackController = Depends(get_playback_controller)):
        """Stop playback. Stopping when idle is not an error."""
        stopped = playback.stop()
        return {"status": "stopped", "changed": stopped}

    @app.post("/api/playback/skip")
    def skip(playback: PlaybackController = Depends(get_playback_controller)):
        """Skip to the next queued track."""
        playback.skip()
        return playback.get_status()

    # Queue endpoints
    @app.get("/api/queue")
    async def list_queue(queue: PlaybackQueue = Depends(get_queue)):
        """Get pending tracks in play order."""
        return {"queue": [t.to_dict() for t in queue.peek_all()]}

    @app.post("/api/queue")
    async def add_to_queue(
        request_data: PlayRequest,
        queue: PlaybackQueue = Depends(get_queue),
        search_session: SearchSession = Depends(get_search_session),
    ):
        """Append a track to the queue."""
        track = _resolve_track(request_data, search_session)
        length = queue.enqueue(track)
        return {"status": "queued", "position": length - 1}

    @app.delete("/api/queue/{index}")
    async def remove_from_queue(index: int, queue: PlaybackQueue = Depends(get_queue)):
        """Remove a track from the queue."""
        if not queue.remove(index):
            raise HTTPException(status_code=404, detail="Queue item not found")
        return {"status": "removed"}

    @app.post("/api/queue/clear")
    async def clear_queue(queue: PlaybackQueue = Depends(get_queue)):
        """Clear the queue."""
        return {"status": "cleared", "removed": queue.clear()}

    # Playlist endpoints
    @app.get("/api/playlist")
    async def list_playlist(playlist: Playlist = Depends(get_playlist)):
        """Get the playlist."""
        return {"name": playlist.name, "tracks": [t.to_dict() for t in playlist.get_all()]}

    @app.post("/api/playlist")
    async def add_to_playlist(
        request_data: PlayRequest,
        playlist: Playlist = Depends(get_playlist),
        search_session: SearchSession = Depends(get_search_session),
    ):
        """Append a track to the playlist."""
        track = _resolve_track(request_data, search_session)
        return {"status": "added", "index": playlist.add(track)}

    @app.delete("/api/playlist/{index}")
    async def remove_from_playlist(index: int, playlist: Playlist = Depends(get_playlist)):
        """Remove a playlist entry."""
        if not playlist.remove(index):
            raise HTTPException(status_code=404, detail="Playlist entry not found")
        return {"status": "removed"}

    @app.post("/api/playlist/{index}/play")
    def play_playlist_entry(
        index: int,
        playback: PlaybackController = Depends(get_playback_controller),
        playlist: Playlist = Depends(get_playlist),
    ):
        """Play a playlist entry now, bypassing the queue."""
        if playlist.get(index) is None:
            raise HTTPException(status_code=404, detail="Playlist entry not found")
        if not playback.play_from_playlist(index):
            detail = str(playback.last_error) if playback.last_error else "Failed to start playback"
            raise HTTPException(status_code=400, detail=detail)
        return playback.get_status()

    # Local files
    @app.get("/api/local/files")
    async def list_local_files(selector: LocalFileSelector = Depends(get_file_selector)):
        """List audio files offered by the local file picker."""
        return {"directory": str(selector.base_directory), "files": selector.list_files()}

    # Notifications
    @app.get("/api/notifications")
    async def drain_notifications(notifications: NotificationCenter = Depends(get_notifications)):
        """Return pending notifications. Each one is delivered once."""
        return {"notifications": [n.to_dict() for n in notifications.drain()]}

    # Configuration endpoints
    @app.get("/api/config")
    async def get_config(config: ConfigManager = Depends(get_config_manager)):
        """Get configuration values, schema and groups."""
        return config.get_full_config()

    @app.patch("/api/config")
    async def update_config(
        request_data: ConfigUpdateRequest,
        config: ConfigManager = Depends(get_config_manager),
    ):
        """Update an editable configuration value."""
        if request_data.key not in CONFIG_SCHEMA:
            raise HTTPException(status_code=400, detail=f"Unknown config key: {request_data.key}")
        config.set(request_data.key, request_data.value)
        return {"status": "updated", "key": request_data.key}

    return app
