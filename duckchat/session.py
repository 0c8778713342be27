"""State of one chat user: subscribed channels, the active one, and commands."""

from __future__ import annotations

from typing import List, Tuple

from duckchat.protocol import (
    CHANNEL_MAX,
    JoinRequest,
    LeaveRequest,
    ListRequest,
    LogoutRequest,
    PacketSizeError,
    ProtocolError,
    SayRequest,
    TextError,
    TextList,
    TextSay,
    TextType,
    WhoRequest,
    decode_text,
)

UNKNOWN_COMMAND = "*Unknown command"
UNRECOGNISED_COMMAND = "*Unknown Command"
DEFAULT_CHANNEL = "Common"


def _clip(value: str, size: int) -> str:
    """Cut *value* to what fits in a NUL-terminated field of *size* bytes."""
    return value.encode("utf-8")[: size - 1].decode("utf-8", "ignore")


def render_text(data) -> List[str]:
    """Turn a packet received from the server into the lines to show."""
    try:
        message = decode_text(data)
    except PacketSizeError as exc:
        # The who-reply size is reported without its channel field.
        expected = exc.expected - CHANNEL_MAX if exc.kind is TextType.WHO else exc.expected
        return [f"Error: expected packet length was {expected}, got {exc.actual}"]
    except ProtocolError:
        return ["error: Recieved Unkown Packet"]

    if isinstance(message, TextSay):
        return [f"[{message.channel}][{message.username}]: {message.text}"]
    if isinstance(message, TextList):
        return ["Existing channels:"] + [f" {name}" for name in message.channels]
    if isinstance(message, TextError):
        return [message.message]
    return [f"Users on channel {message.channel}:"] + [
        f" {name}" for name in message.usernames
    ]


class ChatSession:
    """Turns typed lines into requests and tracks the user's channels."""

    def __init__(self, username: str) -> None:
        self.username = username
        self.channels: List[str] = [DEFAULT_CHANNEL]
        self.active = DEFAULT_CHANNEL
        self.closed = False

    def handle_line(self, line: str) -> Tuple[list, List[str]]:
        """Process one typed line.

        Returns the requests to send to the server and the notices to show.
        After ``/exit`` the session is marked closed.
        """
        if line.endswith("\n"):
            line = line[:-1]
        tokens = [token.rstrip("\n") for token in line.split(" ") if token]
        if not tokens or not tokens[0].startswith("/"):
            return self._say(line), []

        command, args = tokens[0], tokens[1:]
        handlers = {
            "/exit": (0, self._exit),
            "/join": (1, self._join),
            "/leave": (1, self._leave),
            "/list": (0, self._list),
            "/who": (1, self._who),
            "/switch": (1, self._switch),
        }
        if command not in handlers:
            return [], [UNRECOGNISED_COMMAND]
        arity, handler = handlers[command]
        if len(args) != arity:
            return [], [UNKNOWN_COMMAND]
        return handler(*args)

    def render(self, data) -> List[str]:
        """Lines to show for a packet received from the server."""
        return render_text(data)

    def _say(self, text: str) -> list:
        if not self.active:
            return []
        return [SayRequest(self.active, text)]

    def _exit(self):
        self.closed = True
        return [LogoutRequest()], []

    def _join(self, channel: str):
        self.channels.append(_clip(channel, CHANNEL_MAX))
        self.active = _clip(channel, CHANNEL_MAX)
        return [JoinRequest(channel)], []

    def _leave(self, channel: str):
        if self.active == channel:
            self.active = ""
        # Each matching position visited removes the first remaining match.
        position = 0
        while position < len(self.channels):
            if self.channels[position] == channel:
                self.channels.remove(channel)
            position += 1
        return [LeaveRequest(channel)], []

    def _list(self):
        return [ListRequest()], []

    def _who(self, channel: str):
        return [WhoRequest(channel)], []

    def _switch(self, channel: str):
        if channel in self.channels:
            self.active = _clip(channel, CHANNEL_MAX)
            return [], []
        return [], [f"You have not subscribed to channel {channel}"]