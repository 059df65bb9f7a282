"""Session controller: serial read loop, protocol engine wiring and liveness watchdog."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from scalersync_protocol import (
    Command,
    LineFramer,
    LinkClosedError,
    ProtocolStateMachine,
    Resolution,
    ResponseDecoder,
    SerialTransport,
    Step,
    Transition,
    encode,
    render,
)

from .config import AppConfig
from .logging_setup import get_logger


@dataclass
class SessionStatus:
    connected: bool = False
    port: str | None = None
    step: Step = Step.IDLE
    input: Resolution = field(default_factory=Resolution.unknown)
    cycles_completed: int = 0
    commands_sent: int = 0
    unknown_lines: int = 0
    ignored_responses: int = 0
    liveness_faults: int = 0
    last_error: str | None = None


class SessionController:
    def __init__(
        self,
        config: AppConfig,
        transport: Any | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._transport = transport or SerialTransport()
        self._clock = clock
        self._framer = LineFramer()
        self._decoder = ResponseDecoder()
        self._machine = ProtocolStateMachine(config.output_resolution, config.calculator())
        self._status = SessionStatus()
        self._lock = threading.RLock()
        self._events: list[dict[str, Any]] = []
        self._logger = get_logger()

        self._last_rx = clock()
        self._pending_since: float | None = None
        self._idle_reported = False
        self._ack_reported = False

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def machine(self) -> ProtocolStateMachine:
        return self._machine

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "step": self._machine.step.value,
        }
        row.update(fields)
        self._events.append(row)
        if len(self._events) > 1000:
            self._events = self._events[-1000:]

    def connect(self, port: str | None = None) -> None:
        with self._lock:
            port = port or self.config.serial.port
            if not port:
                raise ValueError("No serial port configured")
            self._log_event("connect_start", port=port)
            self._transport.open(port=port, baud=self.config.serial.baud, timeout_ms=self.config.serial.read_timeout_ms)
            self._status.connected = True
            self._status.port = port
            self._status.last_error = None
            self._last_rx = self._clock()
            self._logger.info(
                "receiving data on %s at %s baud, output %s",
                port,
                self.config.serial.baud,
                self._machine.output,
                extra={"event": "connect_ok", "port": port},
            )
            self._log_event("connect_ok", port=port, baud=self.config.serial.baud)

    def disconnect(self) -> None:
        with self._lock:
            self._transport.close()
            self._status.connected = False
            self._framer.reset()
            self._log_event("disconnect")

    def poll_once(self, max_len: int = 256) -> list[Transition]:
        """Read once from the link and process every completed line."""
        with self._lock:
            try:
                data = self._transport.read(max_len)
            except LinkClosedError as exc:
                self._fail(exc)
                raise
            now = self._clock()
            if not data:
                self._check_watchdog(now)
                return []

            self._last_rx = now
            self._idle_reported = False
            transitions: list[Transition] = []
            for line in self._framer.feed(data):
                transitions.append(self._handle_line(line, now))
            self._check_watchdog(now)
            return transitions

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Process the link until ``stop_event`` is set; link failures propagate."""
        while stop_event is None or not stop_event.is_set():
            self.poll_once()

    def _handle_line(self, line: bytes, now: float) -> Transition:
        response = self._decoder.decode(line)
        self._logger.info("scaler response: %s", response.raw.rstrip("\r"), extra={"event": "response_decoded"})
        transition = self._machine.feed(response)

        if response.is_unknown:
            self._status.unknown_lines += 1
        elif not transition.changed and transition.command is None:
            self._status.ignored_responses += 1

        if transition.changed:
            self._logger.info(
                "step %s -> %s input=%s",
                transition.previous.value,
                transition.current.value,
                self._machine.input,
                extra={"event": "step_changed", "step": transition.current.value},
            )
            self._log_event(
                "step_changed",
                previous=transition.previous.value,
                visited=[s.value for s in transition.visited],
                response=response.kind.value,
            )
            # Reconfig or an ack resolves whatever was outstanding.
            self._pending_since = None
            self._ack_reported = False

        if transition.command is not None:
            self._send(transition.command, now)

        self._status.step = self._machine.step
        self._status.input = self._machine.input
        self._status.cycles_completed = self._machine.cycles_completed
        return transition

    def _send(self, command: Command, now: float) -> None:
        payload = encode(command)
        self._logger.info("sending command: %r", render(command), extra={"event": "command_sent", "command": str(command)})
        try:
            self._transport.write(payload)
        except LinkClosedError as exc:
            self._fail(exc)
            raise
        self._status.commands_sent += 1
        self._pending_since = now
        self._ack_reported = False
        self._log_event("command_sent", command=str(command), bytes=len(payload))

    def _check_watchdog(self, now: float) -> None:
        watchdog = self.config.watchdog
        awaiting = self._machine.pending.awaiting_ack
        if (
            watchdog.idle_timeout_s > 0
            and not self._idle_reported
            and (awaiting or self._framer.pending)
            and now - self._last_rx > watchdog.idle_timeout_s
        ):
            self._idle_reported = True
            self._report_fault(
                "link silent",
                silent_s=round(now - self._last_rx, 3),
                partial_bytes=self._framer.pending,
            )
        if (
            watchdog.ack_timeout_s > 0
            and awaiting
            and not self._ack_reported
            and self._pending_since is not None
            and now - self._pending_since > watchdog.ack_timeout_s
        ):
            self._ack_reported = True
            pending = self._machine.pending.command
            self._report_fault("no acknowledgment", command=str(pending), waited_s=round(now - self._pending_since, 3))

    def _report_fault(self, reason: str, **fields: Any) -> None:
        self._status.liveness_faults += 1
        self._logger.warning(
            "liveness fault: %s in step %s %s",
            reason,
            self._machine.step.value,
            fields,
            extra={"event": "liveness_fault", "step": self._machine.step.value},
        )
        self._log_event("liveness_fault", reason=reason, **fields)

    def _fail(self, exc: Exception) -> None:
        self._status.connected = False
        self._status.last_error = str(exc)
        self._logger.error("link failure: %s", exc, extra={"event": "link_failure"})
        self._log_event("link_failure", error=str(exc))
