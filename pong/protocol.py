"""Line protocol spoken between the Pong server and its clients.

Every frame is one UTF-8 line terminated by ``\\n``.  A frame is a verb,
optionally followed by ``:`` and a payload::

    server -> client   ASSIGN:<n>  COUNTDOWN:<k>  START  STATE:<six ints>  QUIT  REJECT:<reason>
    client -> server   MOVE:<d>    QUIT

The ``encode_*`` helpers build frames, the ``parse_*`` helpers are strict and
raise :class:`~pong.errors.ProtocolError` so callers decide whether to drop
the line or abort.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ProtocolError
from .state import StateSnapshot

ENCODING = "utf-8"

ASSIGN = "ASSIGN"
COUNTDOWN = "COUNTDOWN"
START = "START"
STATE = "STATE"
QUIT = "QUIT"
REJECT = "REJECT"
MOVE = "MOVE"

# Optional sign and ASCII digits, surrounding blanks allowed.
INTEGER = re.compile(r"\s*[+-]?[0-9]+\s*\Z")


@dataclass(frozen=True)
class Notice:
    """A decoded server to client frame."""

    kind: str
    player_id: Optional[int] = None
    countdown: Optional[int] = None
    state: Optional[StateSnapshot] = None
    reason: Optional[str] = None


def to_wire(message: str) -> bytes:
    return (message + "\n").encode(ENCODING)


def from_wire(raw: bytes) -> str:
    """Decode one received frame, stripping the line terminator."""

    try:
        return raw.decode(ENCODING).rstrip("\r\n")
    except UnicodeDecodeError as exc:
        raise ProtocolError("frame is not valid UTF-8") from exc


def split_frame(line: str) -> Tuple[str, Optional[str]]:
    verb, sep, payload = line.partition(":")
    return verb, (payload if sep else None)


def _parse_int(payload: Optional[str], verb: str) -> int:
    if payload is None:
        raise ProtocolError(f"{verb} requires a payload")
    if not INTEGER.match(payload):
        raise ProtocolError(f"{verb} payload must be an integer, got {payload!r}")
    try:
        return int(payload)
    except ValueError as exc:
        # Digit count above the interpreter's int conversion limit.
        raise ProtocolError(f"{verb} payload is too long") from exc


# ----------------------------------------------------------------------
# Server to client
# ----------------------------------------------------------------------
def encode_assign(player_id: int) -> str:
    return f"{ASSIGN}:{player_id}"


def encode_countdown(value: int) -> str:
    return f"{COUNTDOWN}:{value}"


def encode_start() -> str:
    return START


def encode_state(snapshot: StateSnapshot) -> str:
    return f"{STATE}:{snapshot.serialise()}"


def encode_quit() -> str:
    return QUIT


def encode_reject(reason: str) -> str:
    return f"{REJECT}:{reason}"


def parse_notice(line: str) -> Notice:
    verb, payload = split_frame(line)
    if verb == ASSIGN:
        return Notice(kind=ASSIGN, player_id=_parse_int(payload, verb))
    if verb == COUNTDOWN:
        return Notice(kind=COUNTDOWN, countdown=_parse_int(payload, verb))
    if verb == STATE:
        if payload is None:
            raise ProtocolError("STATE requires a payload")
        return Notice(kind=STATE, state=StateSnapshot.parse(payload))
    if verb == REJECT:
        return Notice(kind=REJECT, reason=payload or "")
    if verb in (START, QUIT) and payload is None:
        return Notice(kind=verb)
    raise ProtocolError(f"unknown notice {line!r}")


# ----------------------------------------------------------------------
# Client to server
# ----------------------------------------------------------------------
def encode_move(direction: int) -> str:
    return f"{MOVE}:{direction}"


def parse_move(line: str) -> int:
    """Return the direction carried by a ``MOVE`` command.

    The value is not range checked: ``MOVE:3`` moves three paddle steps.
    """

    verb, payload = split_frame(line)
    if verb != MOVE:
        raise ProtocolError(f"not a MOVE command: {line!r}")
    return _parse_int(payload, verb)


def is_quit(line: str) -> bool:
    return line.strip() == QUIT
