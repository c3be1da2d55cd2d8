"""
Record decoder.

Records carry no length, so where one record ends is only known after its
string has been looked up and its arguments read. Decoding is therefore
strictly sequential and stops for good at the first record that cannot be
decoded: there is no safe way to find the next record boundary.
"""
import io
import logging
from typing import List, NamedTuple, Optional, Tuple

from .errors import DecodeError, TruncatedRecordError, UnknownLevelError, UnknownReferenceError
from .levels import Level
from .logs import Log

log = logging.getLogger(__name__)


class ByteReader:
    """Reads exact byte counts from bytes or a binary stream, tracking the offset."""

    def __init__(self, stream):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        self._read = stream.read
        self.offset = 0

    def read(self, size):
        """Read `size` bytes; fewer only at the end of the stream."""
        data = b''
        while len(data) < size:
            chunk = self._read(size - len(data))
            if not chunk:
                break
            data += chunk
        self.offset += len(data)
        return data


class Record(NamedTuple):
    offset: int
    level: Level
    reference: int
    log: Log
    values: Tuple

    @property
    def text(self):
        return self.log.render(self.values)

    @property
    def line(self):
        return f"{self.level.name} {self.text}"


class DecodeResult(NamedTuple):
    records: List[Record]
    error: Optional[DecodeError] = None


class Decoder:
    def __init__(self, table):
        self.table = table

    def read_record(self, reader) -> Optional[Record]:
        """Decode the next record, or return None at a clean end of stream."""
        offset = reader.offset

        head = reader.read(1)
        if not head:
            return None

        try:
            level = Level(head[0])
        except ValueError:
            raise UnknownLevelError(offset, head[0]) from None

        ref = reader.read(1)
        if not ref:
            raise TruncatedRecordError(offset, f"Stream ends after the {level.name} severity byte")
        reference = ref[0]

        try:
            entry = self.table.lookup(level, reference)
        except KeyError:
            raise UnknownReferenceError(offset, level, reference) from None

        def read_exact(size):
            data = reader.read(size)
            if len(data) < size:
                raise TruncatedRecordError(offset, f"Stream ends inside the arguments of {entry!r}")
            return data

        values = tuple(value_type.decode(read_exact) for value_type in entry.types)
        return Record(offset, level, reference, entry, values)

    def records(self, stream):
        """
        Lazily decode records from bytes or a binary stream.

        Raises DecodeError after yielding every record before the bad one.
        """
        reader = stream if isinstance(stream, ByteReader) else ByteReader(stream)

        while True:
            record = self.read_record(reader)
            if record is None:
                return
            yield record

    def lines(self, stream):
        for record in self.records(stream):
            yield record.text

    def decode(self, data) -> DecodeResult:
        """Decode everything, returning the error instead of raising it."""
        records = []
        try:
            for record in self.records(data):
                records.append(record)
        except DecodeError as exc:
            log.warning("%s", exc)
            return DecodeResult(records, exc)
        return DecodeResult(records)
