"""
Build time side of stlog: call site registry and reference assignment.

Every enabled call site contributes one string to the region of its level.
Regions are laid out back to back in level order (error first) and each
string takes exactly one byte, so a string's reference is simply its offset
from the start of its region. The linker script below produces that layout
in a real firmware link; `elf_writer` produces the same thing from a
`Layout`.
"""
import logging
import sys

from .errors import LayoutError, TooManyStringsError
from .levels import Level, LevelGate
from .logs import LOCATION_SEPARATOR, MAX_STRINGS, LogTable
from .placeholders import parse_format

log = logging.getLogger(__name__)

LINKER_SCRIPT = """\
SECTIONS
{
  .stlog 0 (INFO) : {
    _sstlog_error = .;
    *(.stlog.error*);
    _estlog_error = .;

    _sstlog_warn = .;
    *(.stlog.warn*);
    _estlog_warn = .;

    _sstlog_info = .;
    *(.stlog.info*);
    _estlog_info = .;

    _sstlog_debug = .;
    *(.stlog.debug*);
    _estlog_debug = .;

    _sstlog_trace = .;
    *(.stlog.trace*);
    _estlog_trace = .;
  }
}

ASSERT(SIZEOF(.stlog) <= 256, "stlog: more than 256 distinct log strings");
"""


class CallSite:
    """One enabled log statement: its level, format string and reference."""
    __slots__ = ('level', 'fmt', 'symbol', 'placeholders', 'filename', 'line', '_reference')

    enabled = True

    def __init__(self, level, fmt, symbol, placeholders, filename=None, line=None):
        self.level = level
        self.fmt = fmt
        self.symbol = symbol
        self.placeholders = placeholders
        self.filename = filename
        self.line = line
        self._reference = None

    @property
    def reference(self):
        if self._reference is None:
            raise LayoutError(f"{self!r} has no reference, the layout is not linked yet")
        return self._reference

    @property
    def types(self):
        return tuple(p.type for p in self.placeholders)

    def __repr__(self):
        return f"CallSite({self.level.name} {self.fmt!r})"


class _DisabledSite:
    """Stands in for call sites whose level is compiled out."""
    enabled = False
    level = None
    reference = None
    placeholders = ()
    types = ()

    def __repr__(self):
        return "DISABLED"


DISABLED = _DisabledSite()


class Layout:
    """
    Collects call sites, then assigns references with `link()`.

    With `spanned=True` the file and line of each registration are appended
    to the string, so the decoder can report where a record came from.
    """

    def __init__(self, gate=None, spanned=False):
        self.gate = gate if gate is not None else LevelGate()
        self.spanned = spanned
        self.linked = False
        self._sites = {level: {} for level in Level}

    def add(self, level, fmt, _depth=1):
        level = Level(level)

        if self.linked:
            raise LayoutError("Cannot add call sites to a linked layout")

        if not self.gate.enabled(level):
            return DISABLED

        if LOCATION_SEPARATOR in fmt:
            raise LayoutError(f"'{LOCATION_SEPARATOR}' is reserved for source locations: {fmt!r}")

        _, placeholders = parse_format(fmt)
        symbol = fmt
        filename = line = None

        if self.spanned:
            frame = sys._getframe(_depth)
            filename, line = frame.f_code.co_filename, frame.f_lineno
            symbol = f"{fmt}{LOCATION_SEPARATOR}{filename}:{line}"

        region = self._sites[level]
        site = region.get(symbol)

        if site is None:
            site = CallSite(level, fmt, symbol, placeholders, filename, line)
            region[symbol] = site

        return site

    def error(self, fmt):
        return self.add(Level.ERROR, fmt, _depth=2)

    def warn(self, fmt):
        return self.add(Level.WARN, fmt, _depth=2)

    def info(self, fmt):
        return self.add(Level.INFO, fmt, _depth=2)

    def debug(self, fmt):
        return self.add(Level.DEBUG, fmt, _depth=2)

    def trace(self, fmt):
        return self.add(Level.TRACE, fmt, _depth=2)

    def __len__(self):
        return sum(len(region) for region in self._sites.values())

    def __iter__(self):
        for level in Level:
            yield from self._sites[level].values()

    def link(self):
        """Assign references and freeze the layout."""
        if self.linked:
            return self

        total = len(self)
        if total > MAX_STRINGS:
            raise TooManyStringsError(total, MAX_STRINGS)

        for level in Level:
            for reference, site in enumerate(self._sites[level].values()):
                site._reference = reference

        self.linked = True
        log.debug("Linked %d strings (%s)", total, self.gate)
        return self

    def regions(self):
        """`{level: [symbol names]}`, each list in reference order."""
        return {level: [site.symbol for site in self._sites[level].values()] for level in Level}

    def table(self):
        """The table the indexer would rebuild from this layout's artifact."""
        if not self.linked:
            raise LayoutError("The layout must be linked before building a table")
        return LogTable.from_symbols({
            level: list(enumerate(symbols)) for level, symbols in self.regions().items()
        })
