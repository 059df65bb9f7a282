"""Decode framed scaler lines into typed responses.

The scaler answers in short ASCII lines::

    Reconfig          new input signal detected (unsolicited)
    Apix00936         active pixels of the input
    Alin00250         active lines of the input
    Hsiz00936         horizontal size set
    Vsiz00250         vertical size set
    Hctr10732         horizontal center set
    Vctr10655         vertical center set

Anything else (image echoes, partial command echoes, noise) decodes to
``UNKNOWN``. Decoding never raises.
"""

from __future__ import annotations

import logging
import re

from .models import Response, ResponseKind

logger = logging.getLogger(__name__)

_STRIP_CHARS = "\r\x00"

# Ordered; the first matching shape wins.
_SHAPES: tuple[tuple[re.Pattern[str], ResponseKind], ...] = (
    (re.compile(r"Reconfig"), ResponseKind.RECONFIG_NOTICE),
    (re.compile(r"Apix([0-9]+)"), ResponseKind.ACTIVE_PIXELS),
    (re.compile(r"Alin([0-9]+)"), ResponseKind.ACTIVE_LINES),
    (re.compile(r"Hsiz[0-9]+"), ResponseKind.INPUT_H_SIZE_SET),
    (re.compile(r"Vsiz[0-9]+"), ResponseKind.INPUT_V_SIZE_SET),
    (re.compile(r"Hctr[+-]?[0-9]+"), ResponseKind.HORIZONTAL_CENTER_ACK),
    (re.compile(r"Vctr[+-]?[0-9]+"), ResponseKind.VERTICAL_CENTER_ACK),
)


def _to_text(line: bytes | str) -> str | None:
    if isinstance(line, str):
        return line
    try:
        return line.decode("ascii")
    except UnicodeDecodeError:
        return None


def decode_line(line: bytes | str) -> Response:
    text = _to_text(line)
    if text is None:
        raw = bytes(line).decode("ascii", errors="replace")
        logger.debug("non-ascii line %r", raw, extra={"event": "decode_unknown"})
        return Response(ResponseKind.UNKNOWN, raw=raw)

    body = text.strip(_STRIP_CHARS)
    for pattern, kind in _SHAPES:
        match = pattern.fullmatch(body)
        if match is None:
            continue
        value = int(match.group(1)) if pattern.groups else None
        return Response(kind, value=value, raw=text)

    logger.debug("unrecognised line %r", text, extra={"event": "decode_unknown"})
    return Response(ResponseKind.UNKNOWN, raw=text)


class ResponseDecoder:
    """Callable wrapper around :func:`decode_line` that counts what it sees."""

    def __init__(self) -> None:
        self.counts: dict[ResponseKind, int] = {}

    def __call__(self, line: bytes | str) -> Response:
        return self.decode(line)

    def decode(self, line: bytes | str) -> Response:
        response = decode_line(line)
        self.counts[response.kind] = self.counts.get(response.kind, 0) + 1
        return response
