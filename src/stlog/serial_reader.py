#
# stlog - Serial transport
# Opens a UART and hands its raw bytes to the decoder. There is no framing:
# records are read back to back exactly as the device wrote them.
import logging
import threading

import serial

log = logging.getLogger(__name__)


class Reader:
    """
    Binary stream over a serial port (or any pyserial URL, e.g. loop://).

    `read()` blocks until data arrives; after `stop()` it returns b'' so the
    decoder sees a clean end of stream at the next record boundary.
    """

    def __init__(self, port, baudrate=115200):
        self.port = port
        self.serial = serial.serial_for_url(
            port,
            baudrate=baudrate,
            bytesize=8,
            parity='N',
            stopbits=1,
            timeout=None,
            xonxoff=0,
            rtscts=0
        )
        self._stop_event = threading.Event()
        log.debug("Opened %s at %d baud", port, baudrate)

    def read(self, size):
        if self._stop_event.is_set():
            return b''
        try:
            return self.serial.read(size)
        except serial.SerialException:
            if self._stop_event.is_set():
                return b''
            raise

    def write(self, data):
        return self.serial.write(data)

    def stop(self):
        self._stop_event.set()
        if self.serial:
            self.serial.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.stop()
