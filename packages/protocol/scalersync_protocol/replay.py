"""Replay captured serial transcripts through the protocol engine."""

from __future__ import annotations

import json
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from . import encoder
from .centering import CenteringCalculator
from .decoder import ResponseDecoder
from .framing import LineFramer
from .models import CenteringError, Command, Resolution, ResponseKind
from .state_machine import ProtocolStateMachine


_HEX_CLEAN = re.compile(r"[^0-9a-fA-F]")

DEVICE_TO_HOST = "device_to_host"
HOST_TO_DEVICE = "host_to_device"


@dataclass(frozen=True)
class ReplayEvent:
    line: int
    direction: str
    payload: bytes


@dataclass
class ReplayReport:
    total_events: int = 0
    host_to_device_events: int = 0
    device_to_host_events: int = 0
    lines_decoded: int = 0
    unknown_lines: int = 0
    cycles_completed: int = 0
    final_step: str = ""
    response_counts: dict[str, int] = field(default_factory=dict)
    command_counts: dict[str, int] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class ReplayRunner:
    def __init__(self, output: Resolution, calculator: CenteringCalculator | None = None) -> None:
        self.output = output
        self.calculator = calculator or CenteringCalculator()

    @staticmethod
    def _decode_hex(value: str) -> bytes:
        cleaned = _HEX_CLEAN.sub("", value)
        if len(cleaned) % 2 == 1:
            cleaned = cleaned[:-1]
        if not cleaned:
            return b""
        return bytes.fromhex(cleaned)

    def _parse_line(self, line_no: int, line: str) -> ReplayEvent | None:
        stripped = line.strip()
        if not stripped:
            return None
        obj = json.loads(stripped)
        if not isinstance(obj, dict):
            raise ValueError("expected a JSON object")
        direction = obj.get("dir") or obj.get("direction") or "unknown"
        if "text" in obj:
            payload = str(obj["text"]).encode("ascii", errors="replace")
        else:
            payload = self._decode_hex(str(obj.get("payload_hex") or obj.get("hex") or ""))
        return ReplayEvent(line=line_no, direction=direction, payload=payload)

    def parse(self, transcript_path: Path, errors: list[str] | None = None) -> list[ReplayEvent]:
        """Parse a JSONL transcript. Bad lines raise unless an ``errors`` list collects them."""
        events: list[ReplayEvent] = []
        for idx, line in enumerate(transcript_path.read_text(encoding="utf-8").splitlines(), start=1):
            try:
                event = self._parse_line(idx, line)
            except ValueError as exc:
                if errors is None:
                    raise
                errors.append(f"invalid_line line={idx} {exc}")
                continue
            if event is not None:
                events.append(event)
        return events

    def run(self, transcript_path: Path, strict: bool = True) -> ReplayReport:
        errors: list[str] = []
        events = self.parse(transcript_path, errors)
        report = ReplayReport(total_events=len(events), errors=errors)

        framer = LineFramer()
        decoder = ResponseDecoder()
        machine = ProtocolStateMachine(self.output, self.calculator)
        expected: deque[Command] = deque()

        halted = False
        for event in events:
            if halted:
                break
            if event.direction == DEVICE_TO_HOST:
                report.device_to_host_events += 1
                for line in framer.feed(event.payload):
                    response = decoder.decode(line)
                    report.lines_decoded += 1
                    try:
                        transition = machine.feed(response)
                    except CenteringError as exc:
                        # Fatal: nothing after this line is replayed.
                        report.errors.append(f"centering_error line={event.line} {exc}")
                        halted = True
                        break
                    if transition.command is not None:
                        expected.append(transition.command)
                        report.commands.append(str(transition.command))
                        key = transition.command.kind.value
                        report.command_counts[key] = report.command_counts.get(key, 0) + 1
                continue

            if event.direction != HOST_TO_DEVICE:
                continue
            report.host_to_device_events += 1
            if not expected:
                report.errors.append(f"unexpected_command line={event.line}")
                continue
            command = expected.popleft()
            if event.payload != encoder.encode(command):
                report.errors.append(
                    f"command_mismatch line={event.line} expected={encoder.render(command)!r} "
                    f"got={event.payload.decode('ascii', errors='replace')!r}"
                )

        report.response_counts = {kind.value: count for kind, count in decoder.counts.items()}
        report.unknown_lines = decoder.counts.get(ResponseKind.UNKNOWN, 0)
        report.cycles_completed = machine.cycles_completed
        report.final_step = machine.step.value

        if strict:
            if report.cycles_completed < 1:
                report.errors.append("no_complete_cycle")
            if expected and report.host_to_device_events:
                report.errors.append(f"missing_commands count={len(expected)}")

        return report
