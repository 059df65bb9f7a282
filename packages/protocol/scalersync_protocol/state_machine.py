"""Step-by-step command sequencer that matches scaler geometry to its input.

One cycle, started by an unsolicited ``Reconfig`` line::

    Reconfig   -> APIX   -> Apix<n>   -> ALIN   -> Alin<n>
               -> HSIZ n -> Hsiz<n>   -> VSIZ n -> Vsiz<n>
               -> HCTR h -> Hctr<h>   -> VCTR v -> Vctr<v>  -> Idle

At most one command is outstanding at a time. ``Reconfig`` pre-empts any
step; every other response is only acted on in the step that expects it.
"""

from __future__ import annotations

import logging

from . import encoder
from .centering import CenteringCalculator
from .models import (
    CenterValues,
    Command,
    PendingCommand,
    Resolution,
    Response,
    ResponseKind,
    Step,
    Transition,
)

logger = logging.getLogger(__name__)

# Step -> (response it waits for, step it moves to)
_EXPECTED: dict[Step, tuple[ResponseKind, Step]] = {
    Step.RECONFIG: (ResponseKind.ACTIVE_PIXELS, Step.GOT_HORIZONTAL_SIZE),
    Step.GOT_HORIZONTAL_SIZE: (ResponseKind.ACTIVE_LINES, Step.GOT_VERTICAL_SIZE),
    Step.GOT_VERTICAL_SIZE: (ResponseKind.INPUT_H_SIZE_SET, Step.SET_H_SIZE),
    Step.SET_H_SIZE: (ResponseKind.INPUT_V_SIZE_SET, Step.SET_V_SIZE),
    Step.SET_V_SIZE: (ResponseKind.HORIZONTAL_CENTER_ACK, Step.SET_H_CENTER),
    Step.SET_H_CENTER: (ResponseKind.VERTICAL_CENTER_ACK, Step.SET_V_CENTER),
}


class ProtocolStateMachine:
    """Owns the protocol step, the measured input size and the pending command."""

    def __init__(self, output: Resolution, calculator: CenteringCalculator | None = None) -> None:
        if not output.is_known:
            raise ValueError(f"Output resolution must be non-zero, got {output}")
        self._output = output
        self._calculator = calculator or CenteringCalculator()
        self._step = Step.IDLE
        self._input = Resolution.unknown()
        self._pending = PendingCommand()
        self._centers: CenterValues | None = None
        self._cycles = 0

    @property
    def step(self) -> Step:
        return self._step

    @property
    def input(self) -> Resolution:
        return self._input

    @property
    def output(self) -> Resolution:
        return self._output

    @property
    def pending(self) -> PendingCommand:
        return PendingCommand(self._pending.command, self._pending.awaiting_ack)

    @property
    def centers(self) -> CenterValues | None:
        return self._centers

    @property
    def cycles_completed(self) -> int:
        return self._cycles

    def reset(self) -> None:
        self._step = Step.IDLE
        self._input = Resolution.unknown()
        self._pending.clear()
        self._centers = None

    def feed(self, response: Response) -> Transition:
        previous = self._step

        if response.kind is ResponseKind.RECONFIG_NOTICE:
            self._input = Resolution.unknown()
            self._centers = None
            self._pending.clear()
            self._step = Step.RECONFIG
            command = self._issue(encoder.query_active_pixels())
            return Transition(previous, self._step, response, command, (Step.RECONFIG,))

        if response.is_unknown:
            return Transition(previous, previous, response)

        expected = _EXPECTED.get(previous)
        if expected is None or response.kind is not expected[0]:
            return self._ignore(previous, response)

        next_step = expected[1]
        # The ack is consumed only once the next command has been built.
        command = self._advance(next_step, response)
        self._pending.clear()
        self._step = next_step

        if next_step is Step.SET_V_CENTER:
            self._step = Step.IDLE
            self._cycles += 1
            logger.info(
                "cycle complete input=%s output=%s centers=%s",
                self._input,
                self._output,
                self._centers,
                extra={"event": "cycle_complete"},
            )
            return Transition(previous, Step.IDLE, response, None, (Step.SET_V_CENTER, Step.IDLE))
        if command is not None:
            command = self._issue(command)
        return Transition(previous, next_step, response, command, (next_step,))

    def _advance(self, next_step: Step, response: Response) -> Command | None:
        if next_step is Step.GOT_HORIZONTAL_SIZE:
            self._input = Resolution(int(response.value or 0), self._input.v)
            return encoder.query_active_lines()
        if next_step is Step.GOT_VERTICAL_SIZE:
            self._input = Resolution(self._input.h, int(response.value or 0))
            return encoder.set_h_size(self._input.h)
        if next_step is Step.SET_H_SIZE:
            return encoder.set_v_size(self._input.v)
        if next_step is Step.SET_V_SIZE:
            self._centers = self._calculator.compute(self._input, self._output)
            return encoder.set_h_center(self._centers.h)
        if next_step is Step.SET_H_CENTER:
            centers = self._centers or self._calculator.compute(self._input, self._output)
            return encoder.set_v_center(centers.v)
        return None

    def _issue(self, command: Command) -> Command | None:
        if self._pending.awaiting_ack:
            return None
        self._pending.issue(command)
        return command

    def _ignore(self, step: Step, response: Response) -> Transition:
        # Reconfig with nothing outstanding: ask for the width again.
        if step is Step.RECONFIG and not self._pending.awaiting_ack:
            command = self._issue(encoder.query_active_pixels())
            return Transition(step, step, response, command)
        logger.debug(
            "ignoring %s in step %s",
            response.kind.value,
            step.value,
            extra={"event": "response_ignored"},
        )
        return Transition(step, step, response)
