"""Control-socket wire format: newline-delimited JSON messages.

Outbound:  {"command": [verb, *args], "request_id": int}
Inbound:   {"request_id": int, "error": "success" | str, "data": any}
           {"event": str, ...}
           {"event": "property-change", "id": int, "name": str, "data": any}

Inbound lines are decoded into a closed set of message types. Anything
that does not fit one of them decodes to None and is dropped.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

SUCCESS = "success"


@dataclass(frozen=True)
class CommandResponse:
    request_id: int
    error: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.error == SUCCESS


@dataclass(frozen=True)
class PropertyChange:
    name: str
    data: Any = None
    id: Optional[int] = None


@dataclass(frozen=True)
class ServerEvent:
    """Any event other than property-change, passed through as-is."""
    event: str
    payload: dict = field(default_factory=dict)


Message = Union[CommandResponse, PropertyChange, ServerEvent]


def encode_command(command: list, request_id: int) -> bytes:
    return json.dumps({"command": command, "request_id": request_id}).encode() + b"\n"


def decode_message(line: Union[str, bytes]) -> Optional[Message]:
    """Parse one line. Returns None for noise, blank lines or unknown shapes."""
    try:
        msg = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(msg, dict):
        return None

    # bool is an int subclass, never a valid id
    request_id = msg.get("request_id")
    if isinstance(request_id, int) and not isinstance(request_id, bool):
        error = msg.get("error")
        if not isinstance(error, str):
            return None
        return CommandResponse(request_id=request_id, error=error, data=msg.get("data"))

    event = msg.get("event")
    if not isinstance(event, str):
        return None
    if event == "property-change":
        name = msg.get("name")
        if not isinstance(name, str):
            return None
        return PropertyChange(name=name, data=msg.get("data"), id=msg.get("id"))
    return ServerEvent(event=event, payload=msg)


class LineBuffer:
    """Accumulates raw socket reads and yields complete lines.

    An unterminated trailing fragment is kept for the next feed().
    """

    def __init__(self):
        self._pending = b""

    def feed(self, chunk: bytes) -> list[bytes]:
        self._pending += chunk
        *lines, self._pending = self._pending.split(b"\n")
        return [ln for ln in lines if ln.strip()]

    @property
    def pending(self) -> bytes:
        return self._pending
