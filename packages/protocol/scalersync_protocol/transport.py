"""Serial transport for the scaler link."""

from __future__ import annotations

from typing import Any

import serial
from serial.tools import list_ports

from .models import LinkClosedError, SerialDevice

SUPPORTED_BAUD_RATES = (300, 600, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200)


def check_baud(baud: int) -> int:
    if baud not in SUPPORTED_BAUD_RATES:
        raise ValueError(f"Unsupported baud rate {baud}; expected one of {SUPPORTED_BAUD_RATES}")
    return baud


class SerialTransport:
    """Thin wrapper over pyserial with the scaler's fixed 8N1 settings."""

    def __init__(self) -> None:
        self._serial: Any | None = None

    @property
    def is_open(self) -> bool:
        return bool(self._serial and self._serial.is_open)

    def open(self, port: str, baud: int = 9600, timeout_ms: int = 100) -> None:
        if self.is_open:
            return
        check_baud(baud)
        self._serial = serial.Serial(
            port=port,
            baudrate=baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=max(timeout_ms, 1) / 1000,
            write_timeout=1.0,
            rtscts=False,
        )

    def close(self) -> None:
        if self._serial is not None:
            self._serial.close()
            self._serial = None

    def write(self, payload: bytes) -> int:
        if not self.is_open:
            raise LinkClosedError("Serial port is not open")
        try:
            written = int(self._serial.write(payload))
            self._serial.flush()
        except (serial.SerialException, OSError) as exc:
            raise LinkClosedError(f"Write failed: {exc}") from exc
        return written

    def read(self, max_len: int = 256) -> bytes:
        """Return whatever arrived within the read timeout, possibly nothing."""
        if not self.is_open:
            raise LinkClosedError("Serial port is not open")
        try:
            waiting = int(self._serial.in_waiting or 0)
            size = min(max_len, waiting) if waiting else 1
            return bytes(self._serial.read(size))
        except (serial.SerialException, OSError) as exc:
            raise LinkClosedError(f"Read failed: {exc}") from exc

    @staticmethod
    def discover() -> list[SerialDevice]:
        devices: list[SerialDevice] = []
        for item in list_ports.comports():
            devices.append(
                SerialDevice(
                    device=item.device,
                    description=item.description,
                    hwid=item.hwid,
                    vid=item.vid,
                    pid=item.pid,
                )
            )
        return devices
