"""SIS command rendering: ``ESC [value] MNEMONIC CR``."""

from __future__ import annotations

from .models import Command, CommandKind

ESC = "\x1b"
COMMAND_TERMINATOR = "\r"

MNEMONICS: dict[CommandKind, str] = {
    CommandKind.QUERY_ACTIVE_PIXELS: "APIX",
    CommandKind.QUERY_ACTIVE_LINES: "ALIN",
    CommandKind.SET_H_SIZE: "HSIZ",
    CommandKind.SET_V_SIZE: "VSIZ",
    CommandKind.SET_H_CENTER: "HCTR",
    CommandKind.SET_V_CENTER: "VCTR",
}

_QUERIES = (CommandKind.QUERY_ACTIVE_PIXELS, CommandKind.QUERY_ACTIVE_LINES)


def render(command: Command) -> str:
    mnemonic = MNEMONICS[command.kind]
    if command.kind in _QUERIES:
        if command.value is not None:
            raise ValueError(f"{command.kind.value} takes no value")
        return f"{ESC}{mnemonic}{COMMAND_TERMINATOR}"
    if command.value is None or command.value < 0:
        raise ValueError(f"{command.kind.value} needs a non-negative value, got {command.value}")
    return f"{ESC}{command.value}{mnemonic}{COMMAND_TERMINATOR}"


def encode(command: Command) -> bytes:
    return render(command).encode("ascii")


def query_active_pixels() -> Command:
    return Command(CommandKind.QUERY_ACTIVE_PIXELS)


def query_active_lines() -> Command:
    return Command(CommandKind.QUERY_ACTIVE_LINES)


def set_h_size(pixels: int) -> Command:
    return Command(CommandKind.SET_H_SIZE, pixels)


def set_v_size(lines: int) -> Command:
    return Command(CommandKind.SET_V_SIZE, lines)


def set_h_center(value: int) -> Command:
    return Command(CommandKind.SET_H_CENTER, value)


def set_v_center(value: int) -> Command:
    return Command(CommandKind.SET_V_CENTER, value)
