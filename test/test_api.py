"""
API endpoint tests for musicbox.

Runs the real components behind the FastAPI app with the catalog backend
and the audio engine mocked out.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from musicbox.catalog import CatalogClient
from musicbox.config_manager import ConfigManager
from musicbox.errors import ResolveFailed, SearchFailed
from musicbox.local_files import LocalFileSelector
from musicbox.models import StreamTarget, Track
from musicbox.notifications import NotificationCenter
from musicbox.playback import PlaybackController
from musicbox.queue import PlaybackQueue, Playlist
from musicbox.search import SearchSession
from musicbox.web.server import create_app


def _track(track_id):
    return Track(id=track_id, title=f"Song {track_id}", artist_name="Artist")


@pytest.fixture
def mock_streaming():
    """Create a mock StreamingController."""
    streaming = Mock()
    streaming.load_remote = Mock()
    streaming.load_local = Mock()
    streaming.pause = Mock()
    streaming.resume = Mock()
    streaming.stop = Mock()
    streaming.stop_playback = Mock()
    streaming.get_position = Mock(return_value=3.0)
    streaming.get_duration = Mock(return_value=180.0)
    return streaming


@pytest.fixture
def mock_catalog():
    catalog = Mock(spec=CatalogClient)
    catalog.search.return_value = [_track(1), _track(2)]
    catalog.resolve_stream.side_effect = lambda track_id, quality=None: StreamTarget(
        url=f"https://cdn.example/{track_id}.flac"
    )
    return catalog


@pytest.fixture
def music_dir(tmp_path):
    (tmp_path / "intro.mp3").write_bytes(b"ID3")
    return tmp_path


@pytest.fixture
def components(mock_streaming, mock_catalog, music_dir):
    config_manager = ConfigManager({"local_music_directory": str(music_dir)})
    notifications = NotificationCenter()
    search_session = SearchSession(mock_catalog, notifications)
    playback = PlaybackController(
        PlaybackQueue(),
        mock_streaming,
        mock_catalog,
        notifications=notifications,
        playlist=Playlist(),
    )
    return {
        "config_manager": config_manager,
        "notifications": notifications,
        "search_session": search_session,
        "playback": playback,
        "file_selector": LocalFileSelector(config_manager),
    }


@pytest.fixture
def client(components):
    app = create_app(
        components["config_manager"],
        components["search_session"],
        components["playback"],
        components["file_selector"],
        components["notifications"],
    )
    return TestClient(app)


# =========================================================================
# Search
# =========================================================================


def test_search(client, mock_catalog):
    response = client.get("/api/search", params={"q": "song"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "song"
    assert [t["id"] for t in data["tracks"]] == [1, 2]
    mock_catalog.search.assert_called_once_with("song", base_url=None)


def test_search_failure(client, mock_catalog):
    mock_catalog.search.side_effect = SearchFailed(
        SearchFailed.HTTP, "Search API failed: 500", status_code=500
    )

    response = client.get("/api/search", params={"q": "song"})

    assert response.status_code == 502
    assert response.json()["detail"] == "Search API failed: 500"


def test_search_results(client):
    client.get("/api/search", params={"q": "song"})

    response = client.get("/api/search/results")

    assert response.status_code == 200
    assert response.json()["query"] == "song"
    assert len(response.json()["tracks"]) == 2


# =========================================================================
# Playback
# =========================================================================


def test_status_idle(client):
    response = client.get("/api/playback/status")

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    assert response.json()["current_track"] is None


def test_play_search_result(client, mock_streaming):
    client.get("/api/search", params={"q": "song"})

    response = client.post("/api/playback/play", json={"result_index": 1})

    assert response.status_code == 200
    assert response.json()["track"]["id"] == 2
    mock_streaming.load_remote.assert_called_once_with("https://cdn.example/2.flac")

    status = client.get("/api/playback/status").json()
    assert status["state"] == "playing"
    assert status["source"] == "remote"
    assert status["position_seconds"] == 3.0
    assert status["duration_seconds"] == 180.0


def test_play_explicit_track(client, mock_catalog):
    response = client.post(
        "/api/playback/play",
        json={"track": {"id": "abc", "title": "Named", "audio_quality": "LOSSLESS"}},
    )

    assert response.status_code == 200
    assert response.json()["track"]["title"] == "Named"
    assert response.json()["track"]["artist_name"] == "Unknown Artist"
    mock_catalog.resolve_stream.assert_called_once_with("abc", quality="LOSSLESS")


def test_play_unknown_result(client):
    response = client.post("/api/playback/play", json={"result_index": 5})
    assert response.status_code == 404


def test_play_empty_request(client):
    response = client.post("/api/playback/play", json={})
    assert response.status_code == 400


def test_play_track_without_source(client, mock_streaming):
    response = client.post("/api/playback/play", json={"track": {"title": "No id"}})

    assert response.status_code == 400
    mock_streaming.load_remote.assert_not_called()


def test_play_resolve_failure(client, mock_catalog):
    mock_catalog.resolve_stream.side_effect = ResolveFailed(
        ResolveFailed.MISSING_URL, "Stream URL not found in response."
    )

    response = client.post("/api/playback/play", json={"track": {"id": 1}})

    assert response.status_code == 400
    assert response.json()["detail"] == "Stream URL not found in response."
    assert client.get("/api/playback/status").json()["state"] == "idle"


def test_play_local(client, mock_streaming, music_dir):
    response = client.post("/api/playback/play-local", json={"path": "intro.mp3"})

    assert response.status_code == 200
    assert response.json()["status"] == "playing"
    mock_streaming.load_local.assert_called_once_with(str((music_dir / "intro.mp3").resolve()))
    assert client.get("/api/playback/status").json()["source"] == "local"


def test_play_local_cancelled(client, mock_streaming):
    response = client.post("/api/playback/play-local", json={})

    assert response.status_code == 200
    assert response.json() == {"status": "cancelled"}
    mock_streaming.load_local.assert_not_called()


def test_pause_resume(client, mock_streaming):
    client.post("/api/playback/play", json={"track": {"id": 1}})

    assert client.post("/api/playback/pause").json() == {"status": "paused"}
    assert client.post("/api/playback/pause").status_code == 400
    assert client.post("/api/playback/resume").json() == {"status": "playing"}
    mock_streaming.pause.assert_called_once()
    mock_streaming.resume.assert_called_once()


def test_resume_when_idle(client):
    assert client.post("/api/playback/resume").status_code == 400


def test_stop(client):
    client.post("/api/playback/play", json={"track": {"id": 1}})

    response = client.post("/api/playback/stop")

    assert response.json() == {"status": "stopped", "changed": True}
    assert client.post("/api/playback/stop").json() == {"status": "stopped", "changed": False}


def test_skip(client):
    client.post("/api/queue", json={"track": {"id": 2}})
    client.post("/api/playback/play", json={"track": {"id": 1}})

    status = client.post("/api/playback/skip").json()

    assert status["state"] == "playing"
    assert status["current_track"]["id"] == 2
    assert status["queue_length"] == 0


# =========================================================================
# Queue and playlist
# =========================================================================


def test_queue_endpoints(client):
    client.get("/api/search", params={"q": "song"})

    assert client.post("/api/queue", json={"result_index": 0}).json()["position"] == 0
    assert client.post("/api/queue", json={"track": {"id": 9}}).json()["position"] == 1

    queue = client.get("/api/queue").json()["queue"]
    assert [t["id"] for t in queue] == [1, 9]

    assert client.delete("/api/queue/0").status_code == 200
    assert client.delete("/api/queue/5").status_code == 404
    assert client.post("/api/queue/clear").json() == {"status": "cleared", "removed": 1}
    assert client.get("/api/queue").json()["queue"] == []


def test_queue_does_not_start_playback(client, mock_streaming):
    client.post("/api/queue", json={"track": {"id": 1}})

    assert client.get("/api/playback/status").json()["state"] == "idle"
    mock_streaming.load_remote.assert_not_called()


def test_playlist_endpoints(client, mock_streaming):
    assert client.post("/api/playlist", json={"track": {"id": 1}}).json()["index"] == 0
    assert client.post("/api/playlist", json={"track": {"id": 2}}).json()["index"] == 1

    playlist = client.get("/api/playlist").json()
    assert playlist["name"] == "Playlist"
    assert [t["id"] for t in playlist["tracks"]] == [1, 2]

    status = client.post("/api/playlist/1/play").json()
    assert status["current_track"]["id"] == 2
    mock_streaming.load_remote.assert_called_once_with("https://cdn.example/2.flac")

    assert client.post("/api/playlist/7/play").status_code == 404
    assert client.delete("/api/playlist/0").status_code == 200
    assert client.delete("/api/playlist/9").status_code == 404


# =========================================================================
# Local files, notifications, config
# =========================================================================


def test_list_local_files(client, music_dir):
    data = client.get("/api/local/files").json()

    assert data["directory"] == str(music_dir)
    assert data["files"] == ["intro.mp3"]


def test_notifications_delivered_once(client):
    client.post("/api/playback/play", json={"track": {"id": 1, "title": "Hello"}})

    first = client.get("/api/notifications").json()["notifications"]
    second = client.get("/api/notifications").json()["notifications"]

    assert [n["message"] for n in first] == ["Streaming: Hello"]
    assert second == []


def test_get_config(client):
    data = client.get("/api/config").json()

    assert set(data) == {"values", "schema", "groups"}
    assert data["values"]["resolve_endpoint"] == "song"


def test_update_config(client, components):
    response = client.patch(
        "/api/config", json={"key": "api_base_url", "value": "http://localhost:9000"}
    )

    assert response.status_code == 200
    assert components["config_manager"].get("api_base_url") == "http://localhost:9000"


def test_update_unknown_config_key(client):
    response = client.patch("/api/config", json={"key": "bogus", "value": "x"})
    assert response.status_code == 400
