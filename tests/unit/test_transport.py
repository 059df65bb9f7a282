import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import serial

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "protocol"))

from scalersync_protocol import transport as transport_mod
from scalersync_protocol.models import LinkClosedError, SerialDevice
from scalersync_protocol.transport import SUPPORTED_BAUD_RATES, SerialTransport, check_baud


class StubSerial:
    def __init__(self, incoming=b"", fail=False):
        self.is_open = True
        self.incoming = incoming
        self.fail = fail
        self.written = []
        self.read_sizes = []

    @property
    def in_waiting(self):
        if self.fail:
            raise serial.SerialException("device reports readiness to read but returned no data")
        return len(self.incoming)

    def read(self, size):
        self.read_sizes.append(size)
        chunk, self.incoming = self.incoming[:size], self.incoming[size:]
        return chunk

    def write(self, payload):
        if self.fail:
            raise serial.SerialException("write failed")
        self.written.append(payload)
        return len(payload)

    def flush(self):
        pass

    def close(self):
        self.is_open = False


class BaudTests(unittest.TestCase):
    def test_supported_rates_pass_through(self):
        for baud in SUPPORTED_BAUD_RATES:
            self.assertEqual(check_baud(baud), baud)

    def test_unsupported_rate_raises(self):
        with self.assertRaises(ValueError):
            check_baud(14400)

    def test_open_rejects_rate_before_touching_port(self):
        with mock.patch.object(transport_mod.serial, "Serial") as serial_cls:
            with self.assertRaises(ValueError):
                SerialTransport().open("/dev/ttyUSB0", baud=14400)
            serial_cls.assert_not_called()


class SerialTransportTests(unittest.TestCase):
    def test_open_uses_8n1_without_flow_control(self):
        with mock.patch.object(transport_mod.serial, "Serial") as serial_cls:
            SerialTransport().open("/dev/ttyUSB0", baud=19200, timeout_ms=250)
        kwargs = serial_cls.call_args.kwargs
        self.assertEqual(kwargs["baudrate"], 19200)
        self.assertEqual(kwargs["bytesize"], serial.EIGHTBITS)
        self.assertEqual(kwargs["parity"], serial.PARITY_NONE)
        self.assertEqual(kwargs["stopbits"], serial.STOPBITS_ONE)
        self.assertFalse(kwargs["rtscts"])
        self.assertAlmostEqual(kwargs["timeout"], 0.25)

    def test_read_returns_waiting_bytes(self):
        link = SerialTransport()
        link._serial = StubSerial(b"Apix00936\r\n")
        self.assertEqual(link.read(4), b"Apix")
        self.assertEqual(link.read(), b"00936\r\n")

    def test_read_blocks_for_one_byte_when_idle(self):
        link = SerialTransport()
        stub = StubSerial(b"")
        link._serial = stub
        self.assertEqual(link.read(), b"")
        self.assertEqual(stub.read_sizes, [1])

    def test_write_sends_payload(self):
        link = SerialTransport()
        stub = StubSerial()
        link._serial = stub
        self.assertEqual(link.write(b"\x1bAPIX\r"), 6)
        self.assertEqual(stub.written, [b"\x1bAPIX\r"])

    def test_serial_errors_become_link_closed(self):
        link = SerialTransport()
        link._serial = StubSerial(fail=True)
        with self.assertRaises(LinkClosedError):
            link.read()
        with self.assertRaises(LinkClosedError):
            link.write(b"\x1bALIN\r")

    def test_closed_transport_raises(self):
        link = SerialTransport()
        with self.assertRaises(LinkClosedError):
            link.read()
        with self.assertRaises(LinkClosedError):
            link.write(b"\x1bAPIX\r")

        link._serial = StubSerial()
        link.close()
        self.assertFalse(link.is_open)
        with self.assertRaises(LinkClosedError):
            link.read()

    def test_discover_maps_port_info(self):
        port = SimpleNamespace(device="/dev/ttyUSB0", description="USB Serial", hwid="USB VID:PID=0403:6001", vid=0x0403, pid=0x6001)
        with mock.patch.object(transport_mod.list_ports, "comports", return_value=[port]):
            devices = SerialTransport.discover()
        self.assertEqual(
            devices,
            [SerialDevice(device="/dev/ttyUSB0", description="USB Serial", hwid="USB VID:PID=0403:6001", vid=0x0403, pid=0x6001)],
        )


if __name__ == "__main__":
    unittest.main()
