import hashlib
import logging

from elftools.elf.elffile import ELFFile
from elftools.elf.sections import SymbolTableSection

from .errors import LayoutError
from .levels import Level
from .logs import LogTable

log = logging.getLogger(__name__)


def load_elf(elf_path):
    """
    Index the log strings of an unstripped ELF file.

    Raises ELFError/OSError when the file cannot be read, ArtifactError when
    its string regions are unusable.
    """
    sha256 = hashlib.sha256()

    with open(elf_path, 'rb') as elf_file:
        for chunk in iter(lambda: elf_file.read(4096), b''):
            sha256.update(chunk)

        # The elf file must still be opened while the sections are read
        elf_file.seek(0)
        table = index_elf(ELFFile(elf_file), sha256.hexdigest())

    log.info("Indexed %d log strings from '%s' (sha256 %s)", len(table), elf_path, table.digest)
    return table


def index_elf(elf, digest=None):
    section = elf.get_section_by_name('.stlog')

    if section is not None:
        regions = symbol_regions(elf)
    else:
        regions = packed_regions(elf)
        if regions is None:
            raise LayoutError("No .stlog section in the ELF file")

    return LogTable.from_symbols(regions, digest)


def _section_index(elf, name):
    for index, section in enumerate(elf.iter_sections()):
        if section.name == name:
            return index
    return None


def symbol_regions(elf):
    """
    Recover `{level: [(reference, string)]}` from the symbols of `.stlog`.

    Regions are delimited by the `_sstlog_<level>` / `_estlog_<level>`
    symbols and must follow each other in level order.
    """
    symtab = elf.get_section_by_name('.symtab')
    if not isinstance(symtab, SymbolTableSection):
        raise LayoutError("No symbol table in the ELF file (was it stripped?)")

    stlog_index = _section_index(elf, '.stlog')
    boundary_names = {name for level in Level for name in (level.start_symbol, level.end_symbol)}
    boundaries = {}
    strings = []

    for symbol in symtab.iter_symbols():
        if symbol.name in boundary_names:
            boundaries[symbol.name] = symbol['st_value']
        elif symbol['st_info']['type'] == 'STT_OBJECT' and symbol['st_shndx'] == stlog_index:
            strings.append((symbol['st_value'], symbol.name))

    missing = sorted(boundary_names - boundaries.keys())
    if missing:
        raise LayoutError(f"Missing region boundary symbols: {', '.join(missing)}")

    bounds = []
    previous_end = None
    for level in Level:
        start, end = boundaries[level.start_symbol], boundaries[level.end_symbol]
        if end < start:
            raise LayoutError(f"{level.name} region ends before it starts ({start:#x}..{end:#x})")
        if previous_end is not None and start != previous_end:
            raise LayoutError(f"{level.name} region does not follow the previous region "
                              f"(starts at {start:#x}, expected {previous_end:#x})")
        bounds.append((level, start, end))
        previous_end = end

    regions = {level: [] for level in Level}
    for address, name in sorted(strings):
        for level, start, end in bounds:
            if start <= address < end:
                reference = address - start
                if reference > 0xFF:
                    raise LayoutError(f"'{name}' is {reference} bytes into the {level.name} region, "
                                      f"references are a single byte")
                regions[level].append((reference, name))
                break
        else:
            raise LayoutError(f"'{name}' at {address:#x} lies outside every region")

    return regions


def packed_regions(elf):
    """
    Recover regions stored as NUL terminated strings, one section per level.

    Returns None when the ELF has none of the `.stlog.<level>` sections.
    """
    regions = {}
    found = False

    for level in Level:
        section = elf.get_section_by_name(level.section)
        regions[level] = []
        if section is None:
            continue

        found = True
        data = section.data()
        if not data:
            continue
        if not data.endswith(b'\x00'):
            raise LayoutError(f"Unterminated string at the end of {level.section}")

        for reference, raw in enumerate(data[:-1].split(b'\x00')):
            regions[level].append((reference, raw.decode(errors='replace')))

    return regions if found else None
