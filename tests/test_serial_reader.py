from itertools import islice

from stlog.decoder import Decoder
from stlog.encoder import Logger
from stlog.serial_reader import Reader


def test_loopback(firmware, table):
    # loop:// echoes everything written, the port is both sink and source
    with Reader("loop://") as port:
        logger = Logger(port)
        logger.log(firmware.temperature, 42)
        logger.log(firmware.radio_retry, 2, 5)
        logger.log(firmware.started)

        lines = list(islice(Decoder(table).lines(port), 3))

    assert lines == ["temperature: 42 C", "radio retry 2/5", "started"]


def test_stopped_reader_ends_the_stream(table):
    port = Reader("loop://")
    port.stop()
    assert port.read(1) == b""
    assert list(Decoder(table).records(port)) == []
