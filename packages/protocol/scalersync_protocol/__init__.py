"""Protocol engine for line-oriented video scaler serial links."""

from .centering import CenteringCalculator
from .decoder import ResponseDecoder, decode_line
from .encoder import encode, render
from .framing import LineFramer, iter_lines
from .models import (
    CenteringError,
    CenterValues,
    Command,
    CommandKind,
    LinkClosedError,
    PendingCommand,
    Resolution,
    Response,
    ResponseKind,
    ScalerSyncError,
    SerialDevice,
    Step,
    Transition,
)
from .replay import ReplayEvent, ReplayReport, ReplayRunner
from .state_machine import ProtocolStateMachine
from .transport import SUPPORTED_BAUD_RATES, SerialTransport, check_baud

__all__ = [
    "CenterValues",
    "CenteringCalculator",
    "CenteringError",
    "Command",
    "CommandKind",
    "LineFramer",
    "LinkClosedError",
    "PendingCommand",
    "ProtocolStateMachine",
    "ReplayEvent",
    "ReplayReport",
    "ReplayRunner",
    "Resolution",
    "Response",
    "ResponseDecoder",
    "ResponseKind",
    "SUPPORTED_BAUD_RATES",
    "ScalerSyncError",
    "SerialDevice",
    "SerialTransport",
    "Step",
    "Transition",
    "check_baud",
    "decode_line",
    "encode",
    "iter_lines",
    "render",
]
