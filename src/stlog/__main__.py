import logging
import sys
from contextlib import contextmanager
from pathlib import Path

from elftools.elf.elffile import ELFError

from .cli import parse_args
from .decoder import Decoder
from .elf_reader import load_elf
from .errors import ArtifactError, DecodeError
from .settings import get_settings

EXIT_OK = 0
EXIT_DECODE_FAULT = 1
EXIT_BAD_ARTIFACT = 2


@contextmanager
def open_stream(args, settings):
    """The binary stream to decode: serial port, file or stdin."""
    if args.comm is not None:
        from .serial_reader import Reader as SerialReader

        port = args.comm or settings.get_com_port()
        if not port:
            raise OSError("No serial port given and none used before")

        baudrate = args.baudrate or settings.get_baudrate()
        reader = SerialReader(port, baudrate)
        settings.set_com_port(port)
        settings.set_baudrate(baudrate)
        try:
            yield reader
        finally:
            reader.stop()

    elif args.input in (None, '-'):
        yield sys.stdin.buffer

    else:
        with open(args.input, 'rb') as f:
            yield f


def print_records(decoder, stream, args):
    for record in decoder.records(stream):
        if record.level > args.level:
            continue

        line = record.line
        if args.location and record.log.location:
            line += f" ({record.log.location})"
        print(line, flush=True)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")

    settings = get_settings()

    if args.elf is None:
        recent = settings.get_recent_files()
        if not recent:
            print("Error: no ELF file given and none used before", file=sys.stderr)
            return EXIT_BAD_ARTIFACT
        args.elf = recent[0]
        logging.info("Using the last ELF file %s", args.elf)

    elf_path = Path(args.elf)

    try:
        table = load_elf(elf_path)
    except (ELFError, OSError) as e:
        print(f"Error: failed to read the ELF file '{args.elf}': {e}", file=sys.stderr)
        return EXIT_BAD_ARTIFACT
    except ArtifactError as e:
        print(f"Error: unusable ELF file '{args.elf}': {e}", file=sys.stderr)
        return EXIT_BAD_ARTIFACT

    settings.add_recent_file(str(elf_path))

    if table.errors:
        for e in table.errors:
            print(f"Error: malformed log string: {e}", file=sys.stderr)
        if not args.skip_malformed:
            return EXIT_BAD_ARTIFACT

    try:
        with open_stream(args, settings) as stream:
            print_records(Decoder(table), stream, args)
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_FAULT
    except OSError as e:
        print(f"Error: cannot read the log stream: {e}", file=sys.stderr)
        return EXIT_DECODE_FAULT
    except KeyboardInterrupt:
        print("\nCTRL-C received, shutting down...", file=sys.stderr)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
