import logging
import os
from types import MappingProxyType

from .errors import LayoutError, PlaceholderError, TooManyStringsError
from .levels import Level
from .placeholders import parse_format, render

log = logging.getLogger(__name__)

MAX_STRINGS = 256  # references are a single byte on the wire
LOCATION_SEPARATOR = ', loc: '


def split_location(symbol):
    """
    Split `"<fmt>, loc: <file>:<line>"` into (fmt, file, line).

    Strings without a well formed location suffix come back unchanged with
    no location.
    """
    fmt, sep, location = symbol.rpartition(LOCATION_SEPARATOR)
    if sep:
        filename, colon, line = location.rpartition(':')
        if colon and filename and line.isdigit():
            return fmt, filename, int(line)
    return symbol, None, None


class Log:
    """
    A single format string entry of the artifact with its metadata.
    """
    __slots__ = ('level', 'reference', 'fmt', 'filename', 'line', 'pieces', 'placeholders')

    def __init__(self, level, reference, fmt, filename=None, line=None):
        self.level = Level(level)
        self.reference = reference
        self.fmt = fmt
        self.filename = filename
        self.line = line
        self.pieces, self.placeholders = parse_format(fmt)

    @classmethod
    def from_symbol(cls, level, reference, symbol):
        fmt, filename, line = split_location(symbol)
        return cls(level, reference, fmt, filename, line)

    @property
    def types(self):
        return tuple(p.type for p in self.placeholders)

    @property
    def location(self):
        if self.filename is None:
            return None
        return f"{os.path.basename(self.filename)}:{self.line}"

    def render(self, values):
        return render(self.pieces, self.placeholders, values)

    def __repr__(self):
        return f"Log({self.level.name}[{self.reference}] {self.fmt!r})"


class LogTable:
    """
    The (level, reference) -> Log map rebuilt from a build artifact.

    Built once, never mutated afterwards, so a single table can serve any
    number of decoders.
    """

    def __init__(self, entries, errors=(), digest=None):
        regions = {level: {} for level in Level}

        for entry in entries:
            region = regions[entry.level]
            if entry.reference in region:
                raise LayoutError(f"Two {entry.level.name} strings share reference {entry.reference}")
            region[entry.reference] = entry

        self._regions = MappingProxyType({
            level: MappingProxyType(region) for level, region in regions.items()
        })
        self.errors = tuple(errors)
        self.digest = digest

    @classmethod
    def from_symbols(cls, regions, digest=None):
        """
        Build a table from `{level: [(reference, symbol name), ...]}`.

        Strings with malformed placeholders are left out of the table and
        collected in `errors`.
        """
        entries = []
        errors = []
        total = 0

        for level, symbols in regions.items():
            for reference, symbol in symbols:
                total += 1
                try:
                    entries.append(Log.from_symbol(level, reference, symbol))
                except PlaceholderError as exc:
                    log.error("Excluding %s[%d]: %s", Level(level).name, reference, exc)
                    errors.append(exc)

        if total > MAX_STRINGS:
            raise TooManyStringsError(total, MAX_STRINGS)

        return cls(entries, errors, digest)

    def region(self, level):
        return self._regions[Level(level)]

    def lookup(self, level, reference):
        """Return the Log for (level, reference). Raises KeyError if unknown."""
        return self._regions[Level(level)][reference]

    def __contains__(self, key):
        level, reference = key
        try:
            self.lookup(level, reference)
        except (KeyError, ValueError):
            return False
        return True

    def __len__(self):
        return sum(len(region) for region in self._regions.values())

    def __iter__(self):
        for level in Level:
            region = self._regions[level]
            for reference in sorted(region):
                yield region[reference]

    def __repr__(self):
        return f"LogTable({len(self)} entries, {len(self.errors)} excluded)"
