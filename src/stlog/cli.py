import argparse

from .levels import Level


def level(value):
    return Level.parse(value)


def parse_args(argv=None):
    """Parse command line arguments."""

    parser = argparse.ArgumentParser(
        prog="stcat",
        description="Decode stlog records using the strings of an unstripped ELF file")

    parser.add_argument("elf", nargs="?", default=None,
                        help="Path to the unstripped ELF file with the .stlog section (default: the last one used)")
    parser.add_argument("input", nargs="?", default=None,
                        help="Binary record stream to decode (default or '-': stdin)")
    parser.add_argument(
        "-C", "--comm", nargs="?", const="", default=None,
        help="Read from a UART serial port (e.g. /dev/ttyUSB0 or COM4). Alone, reuses the last port")
    parser.add_argument("-b", "--baudrate", type=int, default=None, help="Serial baud rate (default: last used, 115200)")
    parser.add_argument("-l", "--level", type=level, default=Level.TRACE,
                        help="Display level threshold: error, warn, info, debug or trace (default: trace)")
    parser.add_argument("--location", action="store_true", help="Append the source location when the ELF has it")
    parser.add_argument("--skip-malformed", action="store_true",
                        help="Decode even if some strings of the ELF have malformed placeholders")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose diagnostics on stderr")

    args = parser.parse_args(argv)

    if args.comm is not None and args.input is not None:
        parser.error("give either an input file or a serial port, not both")

    return args
