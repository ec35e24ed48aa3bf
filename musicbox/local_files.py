"""
Local file selection for musicbox.

Stands in for the device file picker: offers the audio files found under
the configured music directory and hands back the path the user picked.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .errors import FileSelectionCancelled

if TYPE_CHECKING:
    from .config_manager import ConfigManager


# Supported audio file extensions
AUDIO_EXTENSIONS = [".mp3", ".flac", ".m4a", ".aac", ".ogg", ".opus", ".wav"]


class LocalFileSelector:
    """Lists and selects audio files from the local music directory."""

    def __init__(self, config_manager: "ConfigManager"):
        """
        Initialize LocalFileSelector.

        Args:
            config_manager: ConfigManager for the local_music_directory setting
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager

    @property
    def base_directory(self) -> Path:
        """Music directory from config (not created if missing)."""
        directory = self.config_manager.get("local_music_directory")
        if not directory:
            directory = str(Path.home() / "Music")
        return Path(directory).expanduser()

    @staticmethod
    def is_audio_file(path: Path) -> bool:
        return path.suffix.lower() in AUDIO_EXTENSIONS

    def list_files(self) -> List[str]:
        """
        List selectable audio files.

        Returns:
            Paths relative to the music directory, sorted
        """
        base = self.base_directory
        if not base.is_dir():
            self.logger.warning("Music directory does not exist: %s", base)
            return []

        files = [
            str(path.relative_to(base))
            for path in base.rglob("*")
            if path.is_file() and self.is_audio_file(path)
        ]
        return sorted(files)

    def select(self, name: Optional[str]) -> str:
        """
        Resolve the user's pick to an absolute file path.

        Args:
            name: Path relative to the music directory, or an absolute path
                inside it. None or blank means the picker was dismissed.

        Returns:
            Absolute path of the selected file

        Raises:
            FileSelectionCancelled: Nothing usable was picked
        """
        if not name or not name.strip():
            raise FileSelectionCancelled("No file selected")

        base = self.base_directory.resolve()
        candidate = Path(name.strip()).expanduser()
        if not candidate.is_absolute():
            candidate = base / candidate
        candidate = candidate.resolve()

        # Selection is confined to the music directory
        if base != candidate and base not in candidate.parents:
            self.logger.warning("Rejected selection outside music directory: %s", name)
            raise FileSelectionCancelled(f"Not in the music directory: {name}")

        if not candidate.is_file() or not self.is_audio_file(candidate):
            self.logger.warning("Rejected selection, not an audio file: %s", name)
            raise FileSelectionCancelled(f"Not an audio file: {name}")

        self.logger.info("Local file selected: %s", candidate)
        return str(candidate)
