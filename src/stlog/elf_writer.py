"""
Write the string regions of a layout as an ELF32 artifact.

Symbol form (default): a non-allocated `.stlog` section at address 0 with one
byte per string, an STT_OBJECT symbol named after each string, and the
`_sstlog_<level>` / `_estlog_<level>` boundary symbols, i.e. what linking with
`layout.LINKER_SCRIPT` gives.

Packed form: one `.stlog.<level>` section per region holding the strings
NUL terminated, in reference order.
"""
import struct

from .errors import TooManyStringsError
from .levels import Level
from .logs import MAX_STRINGS

SHT_PROGBITS = 1
SHT_SYMTAB = 2
SHT_STRTAB = 3

STB_GLOBAL = 1
STT_NOTYPE = 0
STT_OBJECT = 1

EM_ARM = 0x28
ET_EXEC = 2

EHDR_SIZE = 52
SHDR_SIZE = 40
SYM_SIZE = 16


class _StringTable:
    def __init__(self):
        self.data = bytearray(b'\x00')
        self._offsets = {'': 0}

    def add(self, name):
        if name not in self._offsets:
            self._offsets[name] = len(self.data)
            self.data.extend(name.encode('utf-8') + b'\x00')
        return self._offsets[name]


def _align(value, alignment):
    return (value + alignment - 1) & ~(alignment - 1)


def _elf_bytes(sections, little_endian):
    """
    sections: list of (name, sh_type, data, link, info, addralign, entsize),
    the NULL section excluded. `.shstrtab` is appended last.
    """
    e = '<' if little_endian else '>'
    shstrtab = _StringTable()
    names = [shstrtab.add(s[0]) for s in sections]
    shstrndx = len(sections) + 1
    names.append(shstrtab.add('.shstrtab'))
    sections = sections + [('.shstrtab', SHT_STRTAB, bytes(shstrtab.data), 0, 0, 1, 0)]

    body = bytearray()
    offsets = []
    for _, _, data, _, _, addralign, _ in sections:
        offset = _align(EHDR_SIZE + len(body), max(addralign, 1))
        body.extend(b'\x00' * (offset - EHDR_SIZE - len(body)))
        offsets.append(offset)
        body.extend(data)

    shoff = _align(EHDR_SIZE + len(body), 4)
    body.extend(b'\x00' * (shoff - EHDR_SIZE - len(body)))

    # ELF identifier (16 bytes)
    e_ident = b'\x7fELF'                            # EI_MAG
    e_ident += b'\x01'                              # EI_CLASS: ELFCLASS32
    e_ident += b'\x01' if little_endian else b'\x02'  # EI_DATA
    e_ident += b'\x01'                              # EI_VERSION: EV_CURRENT
    e_ident += b'\x00' * 9                          # EI_OSABI, EI_ABIVERSION + padding

    header = e_ident + struct.pack(
        e + 'HHIIIIIHHHHHH',
        ET_EXEC,
        EM_ARM,
        1,                   # e_version
        0,                   # e_entry
        0,                   # e_phoff: no program headers
        shoff,
        0x05000000,          # e_flags: ARM EABI v5
        EHDR_SIZE,
        32,                  # e_phentsize
        0,                   # e_phnum
        SHDR_SIZE,
        len(sections) + 1,   # e_shnum, NULL section included
        shstrndx,
    )

    headers = struct.pack(e + '10I', *([0] * 10))
    for (name, sh_type, data, link, info, addralign, entsize), sh_name, offset in zip(sections, names, offsets):
        headers += struct.pack(e + '10I', sh_name, sh_type, 0, 0, offset, len(data), link, info, addralign, entsize)

    return header + bytes(body) + headers


def _symbol_sections(regions, e):
    strtab = _StringTable()
    symbols = [struct.pack(e + 'IIIBBH', 0, 0, 0, 0, 0, 0)]
    stlog_index = 1  # .stlog is the first section after NULL
    address = 0

    for level in Level:
        names = regions.get(level, ())
        start = address
        for name in names:
            info = (STB_GLOBAL << 4) | STT_OBJECT
            symbols.append(struct.pack(e + 'IIIBBH', strtab.add(name), address, 1, info, 0, stlog_index))
            address += 1
        for boundary, value in ((level.start_symbol, start), (level.end_symbol, address)):
            info = (STB_GLOBAL << 4) | STT_NOTYPE
            symbols.append(struct.pack(e + 'IIIBBH', strtab.add(boundary), value, 0, info, 0, stlog_index))

    return [
        ('.stlog', SHT_PROGBITS, bytes(address), 0, 0, 1, 0),
        # link -> .strtab (index 3), info -> first global symbol
        ('.symtab', SHT_SYMTAB, b''.join(symbols), 3, 1, 4, SYM_SIZE),
        ('.strtab', SHT_STRTAB, bytes(strtab.data), 0, 0, 1, 0),
    ]


def _packed_sections(regions):
    sections = []
    for level in Level:
        names = regions.get(level, ())
        data = b''.join(name.encode('utf-8') + b'\x00' for name in names)
        sections.append((level.section, SHT_PROGBITS, data, 0, 0, 1, 0))
    return sections


def elf_image(regions, little_endian=True, packed=False, check=True):
    """Return the artifact bytes for `{level: [strings in reference order]}`."""
    total = sum(len(names) for names in regions.values())
    if check and total > MAX_STRINGS:
        raise TooManyStringsError(total, MAX_STRINGS)

    regions = {Level(level): list(names) for level, names in regions.items()}
    if packed:
        sections = _packed_sections(regions)
    else:
        sections = _symbol_sections(regions, '<' if little_endian else '>')
    return _elf_bytes(sections, little_endian)


def write_elf(regions, stream, little_endian=True, packed=False, check=True):
    """Write the artifact to a binary stream or a path."""
    image = elf_image(regions, little_endian, packed, check)
    if hasattr(stream, 'write'):
        stream.write(image)
    else:
        with open(stream, 'wb') as f:
            f.write(image)
    return len(image)
