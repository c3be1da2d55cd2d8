"""
pytest configuration and fixtures for the stlog tests.

Provides:
- a sample firmware layout covering every placeholder type
- the matching table and ELF artifact
- isolation of the user settings and of the global logger
- Hypothesis profiles
"""
import os

import pytest
from hypothesis import settings, Verbosity

from stlog import encoder
from stlog import settings as stlog_settings
from stlog.elf_writer import write_elf
from stlog.layout import Layout

# Default profile: balanced speed and coverage
settings.register_profile("default", max_examples=100, deadline=None)
# CI profile: more thorough testing
settings.register_profile("ci", max_examples=500, deadline=None)
# Dev profile: fast iteration
settings.register_profile("dev", max_examples=10, deadline=None)
# Debug profile: verbose output
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


class Firmware:
    """The log statements of an imaginary sensor node."""

    def __init__(self, gate=None, spanned=False):
        self.layout = Layout(gate, spanned)
        self.boot_failed = self.layout.error("boot failed")
        self.sensor_lost = self.layout.error("sensor {u8} lost")
        self.radio_retry = self.layout.warn("radio retry {u8}/{u8}")
        self.low_battery = self.layout.warn("low battery")
        self.started = self.layout.info("started")
        self.version = self.layout.info("version {str}")
        self.uptime = self.layout.info("uptime {u32:,} s")
        self.temperature = self.layout.info("temperature: {u16} C")
        self.offset = self.layout.debug("offset {i16} scale {f32}")
        self.frame = self.layout.debug("frame {[u8]} crc {u16:#06x}")
        self.drift = self.layout.debug("drift {i8} {i32} {i64} ppm {f64}")
        self.tick = self.layout.trace("tick {u64} idle {bool}")
        self.layout.link()

    @property
    def sites(self):
        return list(self.layout)


@pytest.fixture
def firmware():
    return Firmware()


@pytest.fixture
def table(firmware):
    return firmware.layout.table()


@pytest.fixture
def elf_path(firmware, tmp_path):
    path = tmp_path / "firmware.elf"
    write_elf(firmware.layout.regions(), path)
    return path


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep the user's real settings out of the tests."""
    data_dir = tmp_path / "user-data"
    monkeypatch.setattr(stlog_settings, "user_data_dir", lambda *args, **kwargs: str(data_dir))
    monkeypatch.setattr(stlog_settings, "_settings", None)
    return data_dir


@pytest.fixture(autouse=True)
def no_global_logger():
    encoder.uninstall()
    yield
    encoder.uninstall()
