"""Exceptions raised by the stlog encoder, indexer and decoder."""


class StlogError(Exception):
    pass


class ArtifactError(StlogError):
    """The build artifact (or the layout feeding it) cannot be used."""


class PlaceholderError(ArtifactError):
    def __init__(self, fmt, position, reason):
        self.fmt = fmt
        self.position = position
        self.reason = reason
        super().__init__(f"{reason} at column {position} in {fmt!r}")


class TooManyStringsError(ArtifactError):
    def __init__(self, count, limit):
        self.count = count
        self.limit = limit
        super().__init__(f"{count} distinct log strings, at most {limit} are supported")


class LayoutError(ArtifactError):
    pass


class DecodeError(StlogError):
    """A record could not be decoded. `offset` is where that record starts."""

    def __init__(self, offset, message):
        self.offset = offset
        super().__init__(f"{message} (record at byte offset {offset})")


class UnknownLevelError(DecodeError):
    def __init__(self, offset, value):
        self.value = value
        super().__init__(offset, f"Invalid severity byte 0x{value:02x}")


class UnknownReferenceError(DecodeError):
    def __init__(self, offset, level, reference):
        self.level = level
        self.reference = reference
        super().__init__(offset, f"No {level.name} string with reference {reference}")


class TruncatedRecordError(DecodeError):
    pass


class EncodeError(StlogError):
    pass


class ArgumentError(EncodeError, ValueError):
    pass


class TransportError(EncodeError):
    pass
