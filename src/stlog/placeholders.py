"""
Placeholder types and format string parsing.

A format string carries its own argument types: `"temperature: {u16} C"`
takes one little-endian u16. An optional Python format spec may follow the
type (`{u16:#06x}`). Literal braces are doubled.
"""
import struct
from typing import NamedTuple, Tuple

from .errors import ArgumentError, PlaceholderError

ENDIAN = '<'  # all numeric arguments on the wire are little-endian
MAX_PAYLOAD = 255  # str and [u8] carry a one byte length prefix


class FixedType:
    """Base for the fixed width types; subclasses only set the attributes."""
    name = None
    unpack_format = None
    length = 0
    samples = (0,)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._struct = struct.Struct(ENDIAN + cls.unpack_format)
        cls.length = cls._struct.size

        # format specs are checked against both ends of the integer range
        bits = cls.length * 8
        if cls.unpack_format in "bhiq":
            cls.samples = (-1 << (bits - 1), (1 << (bits - 1)) - 1)
        elif cls.unpack_format in "BHIQ":
            cls.samples = (0, (1 << bits) - 1)

    @classmethod
    def of(cls, value):
        return Arg(cls, value)

    @classmethod
    def pack(cls, value):
        try:
            return cls._struct.pack(value)
        except (struct.error, OverflowError, TypeError) as exc:
            raise ArgumentError(f"{value!r} is not a valid {cls.name}: {exc}") from None

    @classmethod
    def decode(cls, read):
        return cls._struct.unpack(read(cls.length))[0]

    @classmethod
    def render(cls, value, spec=''):
        return format(value, spec)


class TypeU8(FixedType):
    name = 'u8'
    unpack_format = 'B'


class TypeU16(FixedType):
    name = 'u16'
    unpack_format = 'H'


class TypeU32(FixedType):
    name = 'u32'
    unpack_format = 'I'


class TypeU64(FixedType):
    name = 'u64'
    unpack_format = 'Q'


class TypeI8(FixedType):
    name = 'i8'
    unpack_format = 'b'


class TypeI16(FixedType):
    name = 'i16'
    unpack_format = 'h'


class TypeI32(FixedType):
    name = 'i32'
    unpack_format = 'i'


class TypeI64(FixedType):
    name = 'i64'
    unpack_format = 'q'


class TypeBool(FixedType):
    name = 'bool'
    unpack_format = '?'
    samples = (False,)

    @classmethod
    def pack(cls, value):
        if not isinstance(value, bool):
            raise ArgumentError(f"{value!r} is not a valid bool")
        return super().pack(value)

    @classmethod
    def render(cls, value, spec=''):
        # Rust spelling, so the text matches what the firmware authors wrote
        return format('true' if value else 'false', spec)


class TypeF32(FixedType):
    name = 'f32'
    unpack_format = 'f'
    samples = (0.0,)

    @classmethod
    def render(cls, value, spec=''):
        # a float32 has ~7 significant digits, don't print the float64 noise
        return format(value, spec or '.7g')


class TypeF64(FixedType):
    name = 'f64'
    unpack_format = 'd'
    samples = (0.0,)


class TypeStr:
    name = 'str'
    length = None  # length prefixed
    samples = ('',)

    @classmethod
    def of(cls, value):
        return Arg(cls, value)

    @classmethod
    def pack(cls, value):
        if not isinstance(value, str):
            raise ArgumentError(f"{value!r} is not a valid str")
        data = value.encode('utf-8')
        if len(data) > MAX_PAYLOAD:
            raise ArgumentError(f"str argument is {len(data)} bytes long, at most {MAX_PAYLOAD} fit")
        return bytes((len(data),)) + data

    @classmethod
    def decode(cls, read):
        length = read(1)[0]
        return read(length).decode('utf-8', errors='replace')

    @classmethod
    def render(cls, value, spec=''):
        return format(value, spec)


class TypeBytes:
    name = '[u8]'
    length = None  # length prefixed
    samples = (b'',)

    @classmethod
    def of(cls, value):
        return Arg(cls, value)

    @classmethod
    def pack(cls, value):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ArgumentError(f"{value!r} is not a valid [u8]")
        data = bytes(value)
        if len(data) > MAX_PAYLOAD:
            raise ArgumentError(f"[u8] argument is {len(data)} bytes long, at most {MAX_PAYLOAD} fit")
        return bytes((len(data),)) + data

    @classmethod
    def decode(cls, read):
        length = read(1)[0]
        return bytes(read(length))

    @classmethod
    def render(cls, value, spec=''):
        return format(str(list(value)), spec)


TYPES = {
    t.name: t for t in (
        TypeU8, TypeU16, TypeU32, TypeU64,
        TypeI8, TypeI16, TypeI32, TypeI64,
        TypeF32, TypeF64, TypeBool, TypeStr, TypeBytes,
    )
}


class Arg(NamedTuple):
    """An argument value tagged with the placeholder type it is sent as."""
    type: type
    value: object

    def pack(self):
        return self.type.pack(self.value)


class Placeholder(NamedTuple):
    type: type
    spec: str = ''

    def render(self, value):
        return self.type.render(value, self.spec)


def parse_format(fmt) -> Tuple[Tuple[str, ...], Tuple[Placeholder, ...]]:
    """
    Split a format string into literal pieces and placeholders.

    There is always one more piece than placeholders. Raises PlaceholderError
    on malformed syntax.
    """
    pieces = []
    placeholders = []
    literal = []
    i = 0

    while i < len(fmt):
        c = fmt[i]

        if c == '{':
            if fmt.startswith('{{', i):
                literal.append('{')
                i += 2
                continue

            end = fmt.find('}', i + 1)
            if end == -1:
                raise PlaceholderError(fmt, i, "Unterminated placeholder")

            body = fmt[i + 1:end]
            if '{' in body:
                raise PlaceholderError(fmt, i, "Unexpected '{' inside placeholder")

            name, _, spec = body.partition(':')
            if not name:
                raise PlaceholderError(fmt, i, "Placeholder without a type")

            value_type = TYPES.get(name)
            if value_type is None:
                raise PlaceholderError(fmt, i, f"Unknown placeholder type '{name}'")

            try:
                for sample in value_type.samples:
                    value_type.render(sample, spec)
            except (ValueError, TypeError, OverflowError):
                raise PlaceholderError(fmt, i, f"Invalid format spec '{spec}' for {name}") from None

            pieces.append(''.join(literal))
            literal = []
            placeholders.append(Placeholder(value_type, spec))
            i = end + 1

        elif c == '}':
            if fmt.startswith('}}', i):
                literal.append('}')
                i += 2
                continue
            raise PlaceholderError(fmt, i, "Unmatched '}'")

        else:
            literal.append(c)
            i += 1

    pieces.append(''.join(literal))
    return tuple(pieces), tuple(placeholders)


def render(pieces, placeholders, values):
    out = [pieces[0]]
    for placeholder, value, piece in zip(placeholders, values, pieces[1:]):
        out.append(placeholder.render(value))
        out.append(piece)
    return ''.join(out)
