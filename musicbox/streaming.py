"""
GStreamer-based streaming controller for audio playback.

Uses a persistent playbin pipeline. The pipeline is created at
initialization and stays alive, switching between READY (idle) and
PLAYING (track) states. Remote stream URLs and local files go through the
same playbin; GStreamer does all decoding and buffering.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from .errors import PlaybackFailed

# Defer GStreamer imports until actually needed so the rest of the app
# (and its tests) import cleanly on machines without PyGObject
_Gst = None


def _get_gst():
    """Lazily import GStreamer."""
    global _Gst
    if _Gst is not None:
        return _Gst

    try:
        import gi

        gi.require_version("GLib", "2.0")
        gi.require_version("GObject", "2.0")
        gi.require_version("Gst", "1.0")
        from gi.repository import Gst as _Gst_module

        _Gst = _Gst_module
        return _Gst
    except Exception as e:
        logging.getLogger(__name__).error("Failed to import GStreamer: %s", e)
        raise


class StreamingController:
    """Controls the GStreamer pipeline for audio playback."""

    def __init__(self, config_manager, use_fakesinks: bool = False):
        """
        Initialize StreamingController with persistent pipeline.

        Args:
            config_manager: Configuration manager instance (audio_sink)
            use_fakesinks: If True, use fakesinks for headless testing
        """
        self.config_manager = config_manager
        self.use_fakesinks = use_fakesinks
        self.logger = logging.getLogger(__name__)

        # State tracking
        self.state = "idle"  # 'idle', 'playing', 'paused'
        self.current_uri: Optional[str] = None
        self.eos_callback: Optional[Callable[[], None]] = None
        self.error_callback: Optional[Callable[[str], None]] = None

        self.playbin: Any = None
        self._gst_initialized = False
        self._bus_poll_running = False
        self._bus_poll_thread: Optional[threading.Thread] = None

        self.logger.info(
            "StreamingController initializing with %s",
            "fakesinks" if use_fakesinks else "hardware sinks",
        )
        self._create_persistent_pipeline()
        self.logger.info("StreamingController initialized, pipeline ready in idle state")

    # =========================================================================
    # GStreamer Initialization
    # =========================================================================

    def _ensure_gst_initialized(self):
        """Initialize GStreamer if not already done."""
        Gst = _get_gst()

        if self._gst_initialized:
            return

        if not Gst.is_initialized():
            self.logger.info("Initializing GStreamer...")
            Gst.init(["musicbox", "--gst-disable-registry-fork"])
            self.logger.info("GStreamer initialized successfully")
        self._gst_initialized = True

    def _create_persistent_pipeline(self):
        """Create the persistent playbin pipeline with audio-only output."""
        self._ensure_gst_initialized()

        Gst = _get_gst()
        self.playbin = Gst.ElementFactory.make("playbin", "playbin")
        if self.playbin is None:
            raise RuntimeError("Failed to create playbin element")

        self.playbin.set_property("audio-sink", self._create_audio_sink())
        # Cover art streams are discarded
        self.playbin.set_property("video-sink", Gst.ElementFactory.make("fakesink", "video_sink"))

        # Poll the bus for EOS and errors (no GLib main loop is running)
        self._start_bus_polling()

        ret = self.playbin.set_state(Gst.State.READY)
        if ret == Gst.StateChangeReturn.FAILURE:
            raise RuntimeError("Failed to set pipeline to READY state")

        self.logger.info("Persistent pipeline created successfully")

    def _create_audio_sink(self):
        """Create the configured audio sink, falling back to autoaudiosink."""
        Gst = _get_gst()

        if self.use_fakesinks:
            sink = Gst.ElementFactory.make("fakesink", "audio_sink")
            sink.set_property("sync", True)
            return sink

        sink_name = self.config_manager.get("audio_sink") or "autoaudiosink"
        sink = Gst.ElementFactory.make(sink_name, "audio_sink")
        if sink is None:
            self.logger.warning("Audio sink %s unavailable, using autoaudiosink", sink_name)
            sink = Gst.ElementFactory.make("autoaudiosink", "audio_sink")
        if sink is None:
            raise RuntimeError("Failed to create audio sink")
        return sink

    # =========================================================================
    # Playback Control
    # =========================================================================

    def load_remote(self, url: str):
        """Load and play a remote stream URL."""
        self._load_uri(url)

    def load_local(self, path: str):
        """Load and play a local audio file."""
        file_path = Path(path).expanduser().resolve()
        if not file_path.is_file():
            raise PlaybackFailed(f"File not found: {path}")
        self._load_uri(file_path.as_uri())

    def _load_uri(self, uri: str):
        """
        Load a URI and start playing.

        Raises:
            PlaybackFailed: If the pipeline refuses the source
        """
        self.logger.info("Loading source: %s", uri.split("?", 1)[0])

        Gst = _get_gst()

        # Reset pipeline so only one source is ever held
        self.playbin.set_state(Gst.State.NULL)
        self.state = "idle"
        self.current_uri = None

        self.playbin.set_property("uri", uri)

        ret = self.playbin.set_state(Gst.State.PLAYING)
        if ret == Gst.StateChangeReturn.FAILURE:
            self.playbin.set_state(Gst.State.READY)
            raise PlaybackFailed("Failed to start playback")

        # Wait for state change to complete or error
        ret, state, pending = self.playbin.get_state(5 * Gst.SECOND)
        if ret == Gst.StateChangeReturn.FAILURE:
            self.playbin.set_state(Gst.State.READY)
            raise PlaybackFailed("Pipeline failed to reach PLAYING state")

        self.logger.debug("load: state reached %s (pending %s)", state, pending)

        self.state = "playing"
        self.current_uri = uri
        self.logger.info("Playback started successfully")

    def stop_playback(self):
        """Stop current playback and release the source (pipeline goes to READY)."""
        self.logger.info("Stopping playback")

        Gst = _get_gst()
        self.playbin.set_state(Gst.State.READY)

        self.state = "idle"
        self.current_uri = None

    def pause(self):
        """Pause playback."""
        if self.state != "playing":
            self.logger.warning("Cannot pause: not currently playing")
            raise RuntimeError("Cannot pause: not currently playing")

        Gst = _get_gst()
        ret = self.playbin.set_state(Gst.State.PAUSED)
        if ret == Gst.StateChangeReturn.FAILURE:
            raise RuntimeError("Failed to pause playback")

        ret, state, pending = self.playbin.get_state(5 * Gst.SECOND)
        if state != Gst.State.PAUSED:
            self.logger.warning(
                "Pause state change: ret=%s, state=%s, pending=%s", ret, state, pending
            )

        self.state = "paused"
        self.logger.info("Playback paused")

    def resume(self):
        """Resume playback."""
        if self.state != "paused":
            self.logger.warning("Cannot resume: not currently paused")
            raise RuntimeError("Cannot resume: not currently paused")

        Gst = _get_gst()
        ret = self.playbin.set_state(Gst.State.PLAYING)
        if ret == Gst.StateChangeReturn.FAILURE:
            raise RuntimeError("Failed to resume playback")

        self.playbin.get_state(Gst.SECOND)

        self.state = "playing"
        self.logger.info("Playback resumed")

    def stop(self):
        """Stop the streaming controller and release the pipeline."""
        self.logger.info("Stopping streaming controller...")

        self._stop_bus_polling()

        if self.playbin:
            try:
                Gst = _get_gst()
                self.playbin.set_state(Gst.State.NULL)
                self.playbin = None
            except Exception as e:
                self.logger.error("Error stopping pipeline: %s", e, exc_info=True)

        self.state = "idle"
        self.current_uri = None
        self.logger.info("Streaming controller stopped")

    def get_position(self) -> Optional[int]:
        """Current playback position in seconds, or None if unknown."""
        if not self.playbin or self.state == "idle":
            return None
        try:
            Gst = _get_gst()
            success, position = self.playbin.query_position(Gst.Format.TIME)
            if success:
                return position // Gst.SECOND
        except Exception as e:
            self.logger.debug("Error querying position: %s", e)
        return None

    def get_duration(self) -> Optional[int]:
        """Duration of the loaded source in seconds, or None if unknown."""
        if not self.playbin or self.state == "idle":
            return None
        try:
            Gst = _get_gst()
            success, duration = self.playbin.query_duration(Gst.Format.TIME)
            if success and duration >= 0:
                return duration // Gst.SECOND
        except Exception as e:
            self.logger.debug("Error querying duration: %s", e)
        return None

    # =========================================================================
    # Callbacks
    # =========================================================================

    def set_eos_callback(self, callback: Callable[[], None]):
        """Set callback for end-of-stream events."""
        self.eos_callback = callback

    def set_error_callback(self, callback: Callable[[str], None]):
        """Set callback for errors raised by the pipeline while playing."""
        self.error_callback = callback

    def _on_eos(self, bus, message):
        """Handle end-of-stream message."""
        self.logger.info("End of stream reached")
        if self.eos_callback:
            self.eos_callback()

    def _on_error(self, bus, message):
        """Handle error message."""
        err, debug = message.parse_error()
        self.logger.error("GStreamer error: %s", err)
        self.logger.debug("Debug info: %s", debug)
        if self.error_callback:
            self.error_callback(str(err))

    def _on_warning(self, bus, message):
        """Handle warning message."""
        warn, debug = message.parse_warning()
        self.logger.warning("GStreamer warning: %s", warn)
        self.logger.debug("Debug info: %s", debug)

    # =========================================================================
    # Bus Polling
    # =========================================================================

    def _start_bus_polling(self):
        """Start a thread to poll the bus for messages."""
        self._bus_poll_running = True

        def poll_bus():
            Gst = _get_gst()
            bus = self.playbin.get_bus()
            while self._bus_poll_running and self.playbin:
                msg = bus.timed_pop(100 * Gst.MSECOND)
                if not msg:
                    continue
                try:
                    if msg.type == Gst.MessageType.EOS:
                        self._on_eos(bus, msg)
                    elif msg.type == Gst.MessageType.ERROR:
                        self._on_error(bus, msg)
                    elif msg.type == Gst.MessageType.WARNING:
                        self._on_warning(bus, msg)
                except Exception as e:
                    self.logger.error("Error handling bus message: %s", e, exc_info=True)

        self._bus_poll_thread = threading.Thread(target=poll_bus, daemon=True, name="GstBusPoll")
        self._bus_poll_thread.start()

    def _stop_bus_polling(self):
        """Stop the bus polling thread."""
        self._bus_poll_running = False
        thread = self._bus_poll_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1)

    def get_pipeline_state(self) -> str:
        """
        Get current GStreamer pipeline state.

        Returns:
            State name: 'null', 'ready', 'paused', or 'playing'
        """
        if not self.playbin:
            return "null"

        try:
            Gst = _get_gst()
            _, state, _ = self.playbin.get_state(Gst.SECOND)
            return state.value_nick
        except Exception as e:
            self.logger.warning("Error getting pipeline state: %s", e)
            return "unknown"

