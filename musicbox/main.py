"""
Main entry point for musicbox.

Initializes all components and starts the server.
"""

import argparse
import logging

import uvicorn

from .catalog import CatalogClient
from .config_manager import ConfigManager
from .local_files import LocalFileSelector
from .notifications import NotificationCenter
from .playback import PlaybackController
from .queue import PlaybackQueue, Playlist
from .search import SearchSession
from .streaming import StreamingController
from .web.server import create_app

logger = logging.getLogger(__name__)


class MusicboxServer:
    """Main server class that orchestrates all components."""

    def __init__(self, config_manager: ConfigManager, use_fakesinks: bool = False):
        """
        Initialize all components.

        Args:
            config_manager: Runtime configuration
            use_fakesinks: Discard audio output (headless runs)
        """
        logger.info("Initializing musicbox server...")

        self.config_manager = config_manager
        self.notifications = NotificationCenter()

        self.catalog_client = CatalogClient(self.config_manager)
        self.search_session = SearchSession(self.catalog_client, self.notifications)
        self.file_selector = LocalFileSelector(self.config_manager)

        self.queue = PlaybackQueue()
        self.playlist = Playlist()

        self.streaming_controller = StreamingController(
            self.config_manager, use_fakesinks=use_fakesinks
        )

        self.playback_controller = PlaybackController(
            self.queue,
            self.streaming_controller,
            self.catalog_client,
            notifications=self.notifications,
            playlist=self.playlist,
        )

        self.web_app = create_app(
            self.config_manager,
            self.search_session,
            self.playback_controller,
            self.file_selector,
            self.notifications,
        )

        self.uvicorn_server = None

        logger.info("musicbox server initialized")

    def run(self, host: str, port: int):
        """Start the server (blocks until shutdown)."""
        logger.info("=" * 60)
        logger.info("musicbox is running!")
        logger.info("API: http://%s:%s/api", host, port)
        logger.info("Catalog: %s", self.config_manager.get("api_base_url"))
        logger.info("=" * 60)

        config = uvicorn.Config(self.web_app, host=host, port=port, log_level="info")
        self.uvicorn_server = uvicorn.Server(config)
        self.uvicorn_server.run()

    def stop(self):
        """Stop all components."""
        logger.info("Stopping musicbox server...")

        if self.uvicorn_server:
            self.uvicorn_server.should_exit = True

        if self.playback_controller:
            self.playback_controller.shutdown()

        logger.info("musicbox server stopped")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="musicbox - catalog search and streaming player")
    parser.add_argument("--host", default="0.0.0.0", help="Address to bind the API server to")
    parser.add_argument("--port", type=int, default=8000, help="Port for the API server")
    parser.add_argument("--api-base-url", help="Catalog backend root URL")
    parser.add_argument("--music-dir", help="Directory offered by the local file picker")
    parser.add_argument("--audio-sink", help="GStreamer audio sink element")
    parser.add_argument(
        "--fakesinks", action="store_true", help="Discard audio output (headless testing)"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config_manager = ConfigManager(
        {
            "api_base_url": args.api_base_url,
            "local_music_directory": args.music_dir,
            "audio_sink": args.audio_sink,
        }
    )

    server = MusicboxServer(config_manager, use_fakesinks=args.fakesinks)
    try:
        server.run(args.host, args.port)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()


if __name__ == "__main__":
    main()
