"""Typed models for the scaler protocol engine and its serial link."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScalerSyncError(Exception):
    """Base class for scaler sync errors."""


class CenteringError(ScalerSyncError, ValueError):
    """Output raster cannot hold the input image; fatal configuration error."""


class LinkClosedError(ScalerSyncError, ConnectionError):
    """Serial link failed or reached end of stream."""


class Step(str, Enum):
    IDLE = "Idle"
    RECONFIG = "Reconfig"
    GOT_HORIZONTAL_SIZE = "GotHorizontalSize"
    GOT_VERTICAL_SIZE = "GotVerticalSize"
    SET_H_SIZE = "SetHSize"
    SET_V_SIZE = "SetVSize"
    SET_H_CENTER = "SetHCenter"
    SET_V_CENTER = "SetVCenter"


class ResponseKind(str, Enum):
    RECONFIG_NOTICE = "ReconfigNotice"
    ACTIVE_PIXELS = "ActivePixels"
    ACTIVE_LINES = "ActiveLines"
    INPUT_H_SIZE_SET = "InputHSizeSet"
    INPUT_V_SIZE_SET = "InputVSizeSet"
    HORIZONTAL_CENTER_ACK = "HorizontalCenterAck"
    VERTICAL_CENTER_ACK = "VerticalCenterAck"
    UNKNOWN = "Unknown"


class CommandKind(str, Enum):
    QUERY_ACTIVE_PIXELS = "QueryActivePixels"
    QUERY_ACTIVE_LINES = "QueryActiveLines"
    SET_H_SIZE = "SetHSize"
    SET_V_SIZE = "SetVSize"
    SET_H_CENTER = "SetHCenter"
    SET_V_CENTER = "SetVCenter"


@dataclass(frozen=True)
class Resolution:
    h: int
    v: int

    @classmethod
    def unknown(cls) -> Resolution:
        return cls(0, 0)

    @property
    def is_known(self) -> bool:
        return self.h > 0 and self.v > 0

    def __str__(self) -> str:
        return f"{self.h}x{self.v}"


@dataclass(frozen=True)
class Response:
    """One decoded scaler line.

    ``value`` is only set for active pixel/line counts. ``raw`` is the line
    text exactly as it was framed.
    """

    kind: ResponseKind
    value: int | None = None
    raw: str = ""

    @property
    def is_unknown(self) -> bool:
        return self.kind is ResponseKind.UNKNOWN


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    value: int | None = None

    def __str__(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}({self.value})"


@dataclass(frozen=True)
class CenterValues:
    h: int
    v: int


@dataclass
class PendingCommand:
    command: Command | None = None
    awaiting_ack: bool = False

    def issue(self, command: Command) -> None:
        self.command = command
        self.awaiting_ack = True

    def clear(self) -> None:
        self.command = None
        self.awaiting_ack = False


@dataclass(frozen=True)
class Transition:
    previous: Step
    current: Step
    response: Response
    command: Command | None = None
    visited: tuple[Step, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.visited)


@dataclass(frozen=True)
class SerialDevice:
    device: str
    description: str
    hwid: str
    vid: int | None
    pid: int | None
