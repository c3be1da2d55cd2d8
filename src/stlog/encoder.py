"""
Record encoder.

A record is the severity byte, the reference byte and then every argument
in placeholder order, with no framing. The bytes of one record are written
while holding the logger's lock so concurrent callers never interleave.
"""
import logging
import threading

from .errors import ArgumentError, TransportError
from .levels import Level
from .placeholders import Arg

log = logging.getLogger(__name__)


class BufferSink:
    """Sink collecting everything in memory."""

    def __init__(self):
        self.buffer = bytearray()

    def write(self, data):
        self.buffer.extend(data)
        return len(data)

    def getvalue(self):
        return bytes(self.buffer)

    def clear(self):
        self.buffer.clear()


class Logger:
    """
    Writes records to a sink.

    The sink is anything with a `write(bytes)` method: a file, a serial port,
    a BufferSink. A write raising OSError (SerialException is one), or returning a
    count short of the data length, is a rejected write.
    """

    def __init__(self, sink):
        self.sink = sink
        self._lock = threading.Lock()

    def log(self, site, *values):
        """Log through a call site, typing values from its placeholders."""
        if not site.enabled:
            return

        types = site.types
        if len(values) != len(types):
            raise ArgumentError(f"{site!r} takes {len(types)} arguments, {len(values)} given")

        self.emit(site.level, site.reference, *(Arg(t, v) for t, v in zip(types, values)))

    def emit(self, level, reference, *args):
        level = Level(level)

        if not 0 <= reference <= 0xFF:
            raise ArgumentError(f"Reference {reference} does not fit in a byte")

        # Serialize up front so a bad value never leaves half a record behind
        chunks = [bytes((level, reference))]
        chunks.extend(arg.pack() for arg in args)

        with self._lock:
            for chunk in chunks:
                self._write(chunk)

    def _write(self, data):
        try:
            written = self.sink.write(data)
        except OSError as exc:
            raise TransportError(f"Sink rejected a write: {exc}") from exc

        if written is not None and written < len(data):
            raise TransportError(f"Sink accepted {written} of {len(data)} bytes")


# Process wide logger, installed once at startup
_logger = None
_install_lock = threading.Lock()


def install(logger):
    global _logger
    with _install_lock:
        if _logger is not None:
            raise RuntimeError("A global stlog logger is already installed")
        _logger = logger


def get_logger() -> Logger:
    if _logger is None:
        raise RuntimeError("No global stlog logger installed")
    return _logger


def uninstall():
    """Remove the global logger (test teardown, or re-initialisation)."""
    global _logger
    with _install_lock:
        _logger = None


def log_record(site, *values):
    """
    Log through the global logger.

    Best effort: a rejected write drops the record and returns False.
    """
    try:
        get_logger().log(site, *values)
    except TransportError as exc:
        log.debug("Dropped %r: %s", site, exc)
        return False
    return True
