"""Settings and application data storage using platformdirs."""
import json
import logging
from pathlib import Path
from typing import List, Optional
from platformdirs import user_data_dir

log = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200


class Settings:
    """Manage stcat settings: recent ELF files and the last serial port."""

    def __init__(self):
        """Initialize settings manager."""
        self.app_name = "stlog"
        self.app_author = "stlog"
        self.data_dir = Path(user_data_dir(self.app_name, self.app_author))
        self.settings_file = self.data_dir / "settings.json"
        self.max_recent_files = 10

        # Ensure data directory exists, run without persistence otherwise
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning("Could not create the settings directory: %s", e)

        # Load settings
        self._settings = self._load_settings()

    def _load_settings(self) -> dict:
        """Load settings from file."""
        if self.settings_file.exists():
            try:
                with open(self.settings_file, 'r') as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                log.warning("Could not load settings: %s", e)
                return self._default_settings()
        return self._default_settings()

    def _default_settings(self) -> dict:
        """Return default settings."""
        return {
            "recent_elf_files": [],
            "last_com_port": None,
            "last_baudrate": DEFAULT_BAUDRATE,
        }

    def _save_settings(self) -> None:
        """Save settings to file."""
        try:
            with open(self.settings_file, 'w') as f:
                json.dump(self._settings, f, indent=2)
        except OSError as e:
            log.warning("Could not save settings: %s", e)

    def get_recent_files(self) -> List[str]:
        """Get list of recent ELF files."""
        # Filter out files that no longer exist
        recent = self._settings.get("recent_elf_files", [])
        existing = [f for f in recent if Path(f).exists()]

        if len(existing) != len(recent):
            self._settings["recent_elf_files"] = existing
            self._save_settings()

        return existing

    def add_recent_file(self, filepath: str) -> None:
        """Add a file to the front of the recent files list."""
        filepath = str(Path(filepath).resolve())
        recent = self._settings.get("recent_elf_files", [])

        if filepath in recent:
            recent.remove(filepath)

        recent.insert(0, filepath)
        recent = recent[:self.max_recent_files]

        self._settings["recent_elf_files"] = recent
        self._save_settings()

    def get_com_port(self) -> Optional[str]:
        """Get the last used serial port."""
        return self._settings.get("last_com_port", None)

    def set_com_port(self, port: str) -> None:
        """Set the last used serial port."""
        self._settings["last_com_port"] = port
        self._save_settings()

    def get_baudrate(self) -> int:
        return self._settings.get("last_baudrate", DEFAULT_BAUDRATE)

    def set_baudrate(self, baudrate: int) -> None:
        self._settings["last_baudrate"] = baudrate
        self._save_settings()


# Global settings instance
_settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
