import os
from enum import IntEnum
from typing import Optional


class Level(IntEnum):
    """Severity. The value is both the byte on the wire and the region order."""
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    TRACE = 4

    @property
    def section(self):
        return f".stlog.{self.name.lower()}"

    @property
    def start_symbol(self):
        return f"_sstlog_{self.name.lower()}"

    @property
    def end_symbol(self):
        return f"_estlog_{self.name.lower()}"

    @classmethod
    def parse(cls, name):
        """Level from a case-insensitive name; `warning` is accepted for WARN."""
        key = str(name).strip().upper()
        if key == "WARNING":
            key = "WARN"
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


def parse_max_level(name) -> Optional[Level]:
    """Parse a maximum level option. `off` gives None (nothing enabled)."""
    if isinstance(name, Level):
        return name
    if str(name).strip().lower() == "off":
        return None
    return Level.parse(name)


class LevelGate:
    """
    Selects which levels are compiled in at all.

    Mirrors the build profiles: `max_level` applies to debug builds, and to
    release builds unless `release_max_level` is given.
    """

    def __init__(self, max_level="trace", release_max_level=None, release=False):
        self.debug_max_level = parse_max_level(max_level)
        self.release_max_level = None if release_max_level is None else parse_max_level(release_max_level)
        self.release = release
        self._release_set = release_max_level is not None

    @property
    def max_level(self) -> Optional[Level]:
        if self.release and self._release_set:
            return self.release_max_level
        return self.debug_max_level

    def enabled(self, level) -> bool:
        max_level = self.max_level
        return max_level is not None and Level(level) <= max_level

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        release = environ.get("STLOG_RELEASE", "").strip().lower() in ("1", "true", "yes", "on")
        return cls(
            environ.get("STLOG_MAX_LEVEL", "trace"),
            environ.get("STLOG_RELEASE_MAX_LEVEL") or None,
            release,
        )

    def __repr__(self):
        max_level = self.max_level
        name = "off" if max_level is None else max_level.name.lower()
        profile = "release" if self.release else "debug"
        return f"LevelGate({profile}, max_level={name})"
