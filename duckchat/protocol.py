"""Wire format of the requests sent to servers and the texts sent to clients."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Union

USERNAME_MAX = 32
CHANNEL_MAX = 32
SAY_MAX = 64
IDENTIFY_MAX = 8
MAX_IDENTIFIERS = 50

_INT = struct.Struct("<i")
_HEADER = struct.Struct("<ii")


class ProtocolError(ValueError):
    """A packet could not be understood."""


class PacketSizeError(ProtocolError):
    """A packet of a known type arrived with the wrong length."""

    def __init__(self, kind: IntEnum, expected: int, actual: int) -> None:
        super().__init__(f"expected packet length was {expected}, got {actual}")
        self.kind = kind
        self.expected = expected
        self.actual = actual


class RequestType(IntEnum):
    LOGIN = 0
    LOGOUT = 1
    JOIN = 2
    LEAVE = 3
    SAY = 4
    LIST = 5
    WHO = 6
    KEEP_ALIVE = 7
    S2S_JOIN = 8
    S2S_LEAVE = 9
    S2S_SAY = 10


class TextType(IntEnum):
    SAY = 0
    LIST = 1
    WHO = 2
    ERROR = 3


def _pack_text(value: str, size: int) -> bytes:
    raw = value.encode("utf-8")[: size - 1]
    raw = raw.decode("utf-8", "ignore").encode("utf-8")
    return raw.ljust(size, b"\0")


def _cstring(raw: bytes) -> bytes:
    return raw.split(b"\0", 1)[0][: len(raw) - 1]


def _unpack_text(raw: bytes) -> str:
    return _cstring(raw).decode("utf-8", "replace")


def _pack_binary(value: bytes, size: int) -> bytes:
    return bytes(value)[: size - 1].ljust(size, b"\0")


@dataclass(frozen=True)
class LoginRequest:
    username: str
    kind: ClassVar[RequestType] = RequestType.LOGIN
    _layout: ClassVar[tuple] = (("username", USERNAME_MAX, False),)


@dataclass(frozen=True)
class LogoutRequest:
    kind: ClassVar[RequestType] = RequestType.LOGOUT
    _layout: ClassVar[tuple] = ()


@dataclass(frozen=True)
class JoinRequest:
    channel: str
    kind: ClassVar[RequestType] = RequestType.JOIN
    _layout: ClassVar[tuple] = (("channel", CHANNEL_MAX, False),)


@dataclass(frozen=True)
class LeaveRequest:
    channel: str
    kind: ClassVar[RequestType] = RequestType.LEAVE
    _layout: ClassVar[tuple] = (("channel", CHANNEL_MAX, False),)


@dataclass(frozen=True)
class SayRequest:
    channel: str
    text: str
    kind: ClassVar[RequestType] = RequestType.SAY
    _layout: ClassVar[tuple] = (
        ("channel", CHANNEL_MAX, False),
        ("text", SAY_MAX, False),
    )


@dataclass(frozen=True)
class ListRequest:
    kind: ClassVar[RequestType] = RequestType.LIST
    _layout: ClassVar[tuple] = ()


@dataclass(frozen=True)
class WhoRequest:
    channel: str
    kind: ClassVar[RequestType] = RequestType.WHO
    _layout: ClassVar[tuple] = (("channel", CHANNEL_MAX, False),)


@dataclass(frozen=True)
class KeepAliveRequest:
    kind: ClassVar[RequestType] = RequestType.KEEP_ALIVE
    _layout: ClassVar[tuple] = ()


@dataclass(frozen=True)
class S2SJoin:
    channel: str
    kind: ClassVar[RequestType] = RequestType.S2S_JOIN
    _layout: ClassVar[tuple] = (("channel", CHANNEL_MAX, False),)


@dataclass(frozen=True)
class S2SLeave:
    channel: str
    kind: ClassVar[RequestType] = RequestType.S2S_LEAVE
    _layout: ClassVar[tuple] = (("channel", CHANNEL_MAX, False),)


@dataclass(frozen=True)
class S2SSay:
    identifier: bytes
    username: str
    channel: str
    text: str
    kind: ClassVar[RequestType] = RequestType.S2S_SAY
    _layout: ClassVar[tuple] = (
        ("identifier", IDENTIFY_MAX, True),
        ("username", USERNAME_MAX, False),
        ("channel", CHANNEL_MAX, False),
        ("text", SAY_MAX, False),
    )


@dataclass(frozen=True)
class TextSay:
    channel: str
    username: str
    text: str
    kind: ClassVar[TextType] = TextType.SAY
    _layout: ClassVar[tuple] = (
        ("channel", CHANNEL_MAX, False),
        ("username", USERNAME_MAX, False),
        ("text", SAY_MAX, False),
    )


@dataclass(frozen=True)
class TextError:
    message: str
    kind: ClassVar[TextType] = TextType.ERROR
    _layout: ClassVar[tuple] = (("message", SAY_MAX, False),)


@dataclass(frozen=True)
class TextList:
    channels: tuple = field(default_factory=tuple)
    kind: ClassVar[TextType] = TextType.LIST

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", tuple(self.channels))


@dataclass(frozen=True)
class TextWho:
    channel: str
    usernames: tuple = field(default_factory=tuple)
    kind: ClassVar[TextType] = TextType.WHO

    def __post_init__(self) -> None:
        object.__setattr__(self, "usernames", tuple(self.usernames))


Request = Union[
    LoginRequest, LogoutRequest, JoinRequest, LeaveRequest, SayRequest,
    ListRequest, WhoRequest, KeepAliveRequest, S2SJoin, S2SLeave, S2SSay,
]
Text = Union[TextSay, TextList, TextWho, TextError]

_REQUESTS = {
    cls.kind: cls
    for cls in (
        LoginRequest, LogoutRequest, JoinRequest, LeaveRequest, SayRequest,
        ListRequest, WhoRequest, KeepAliveRequest, S2SJoin, S2SLeave, S2SSay,
    )
}
_FIXED_TEXTS = {cls.kind: cls for cls in (TextSay, TextError)}
_FIXED = tuple(_REQUESTS.values()) + tuple(_FIXED_TEXTS.values())


def _fixed_size(cls) -> int:
    return _INT.size + sum(size for _, size, _ in cls._layout)


def encode(message) -> bytes:
    """Return the bytes that carry *message* on the wire."""
    if isinstance(message, TextList):
        body = b"".join(_pack_text(name, CHANNEL_MAX) for name in message.channels)
        return _HEADER.pack(message.kind, len(message.channels)) + body
    if isinstance(message, TextWho):
        body = b"".join(_pack_text(name, USERNAME_MAX) for name in message.usernames)
        return (
            _HEADER.pack(message.kind, len(message.usernames))
            + _pack_text(message.channel, CHANNEL_MAX)
            + body
        )
    if not isinstance(message, _FIXED):
        raise TypeError(f"cannot encode {type(message).__name__}")
    parts = [_INT.pack(message.kind)]
    for name, size, binary in message._layout:
        value = getattr(message, name)
        parts.append(_pack_binary(value, size) if binary else _pack_text(value, size))
    return b"".join(parts)


def _decode_fixed(cls, data: bytes):
    expected = _fixed_size(cls)
    if len(data) != expected:
        raise PacketSizeError(cls.kind, expected, len(data))
    values = {}
    offset = _INT.size
    for name, size, binary in cls._layout:
        raw = data[offset:offset + size]
        values[name] = _cstring(raw) if binary else _unpack_text(raw)
        offset += size
    return cls(**values)


def _read_type(data: bytes) -> int:
    if len(data) < _INT.size:
        raise ProtocolError(f"packet too short: {len(data)} bytes")
    return _INT.unpack_from(data)[0]


def decode_request(data) -> Request:
    """Parse a packet sent to a server."""
    data = bytes(data)
    value = _read_type(data)
    try:
        kind = RequestType(value)
    except ValueError:
        raise ProtocolError(f"unknown request type {value}") from None
    return _decode_fixed(_REQUESTS[kind], data)


def _split(body: bytes, size: int) -> tuple:
    return tuple(
        _unpack_text(body[start:start + size]) for start in range(0, len(body), size)
    )


def decode_text(data) -> Text:
    """Parse a packet sent to a client."""
    data = bytes(data)
    value = _read_type(data)
    try:
        kind = TextType(value)
    except ValueError:
        raise ProtocolError(f"unknown text type {value}") from None
    if kind in _FIXED_TEXTS:
        return _decode_fixed(_FIXED_TEXTS[kind], data)
    header = _HEADER.size + (CHANNEL_MAX if kind is TextType.WHO else 0)
    if len(data) < _HEADER.size:
        raise PacketSizeError(kind, header, len(data))
    count = _HEADER.unpack_from(data)[1]
    entry = CHANNEL_MAX if kind is TextType.LIST else USERNAME_MAX
    expected = header + entry * count
    if len(data) != expected:
        raise PacketSizeError(kind, expected, len(data))
    if kind is TextType.LIST:
        return TextList(_split(data[header:], entry))
    channel = _unpack_text(data[_HEADER.size:header])
    return TextWho(channel, _split(data[header:], entry))