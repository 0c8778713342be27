"""Dispatching packets that arrive at a server to the right handling."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Tuple, Union

from duckchat.federation import Federation, Outgoing, new_identifier
from duckchat.protocol import (
    JoinRequest,
    LeaveRequest,
    ListRequest,
    LoginRequest,
    LogoutRequest,
    PacketSizeError,
    ProtocolError,
    RequestType,
    S2SJoin,
    S2SLeave,
    S2SSay,
    SayRequest,
    TextError,
    TextList,
    TextSay,
    TextWho,
    WhoRequest,
    decode_request,
)
from duckchat.registry import Address, ChannelTable, Neighbour, UserTable

_CLIENT_PACKET_NAMES = {
    RequestType.LOGIN: "Login",
    RequestType.LOGOUT: "Logout",
    RequestType.JOIN: "Join",
    RequestType.LEAVE: "Leave",
    RequestType.LIST: "List",
    RequestType.WHO: "Who",
    RequestType.SAY: "Say",
}
_SERVER_PACKETS = (RequestType.S2S_JOIN, RequestType.S2S_SAY, RequestType.S2S_LEAVE)


class ChatServer:
    """The state of one chat server and its reaction to each packet."""

    def __init__(
        self,
        host: str,
        port: int,
        neighbours: Iterable[Union[Neighbour, Address]] = (),
        new_id: Callable[[], bytes] = new_identifier,
        log: Callable[[str], None] = print,
    ) -> None:
        self.host = host
        self.port = port
        self.users = UserTable()
        self.channels = ChannelTable()
        self._log = log
        self.federation = Federation(
            host, port, neighbours, channels=self.channels, new_id=new_id, log=log
        )

    def _say(self, text: str, peer: Optional[Address] = None) -> None:
        prefix = f"{self.host}:{self.port}"
        if peer is not None:
            prefix += f" {peer[0]}:{peer[1]}"
        self._log(f"{prefix} {text}")

    def handle(self, data, address) -> List[Outgoing]:
        """React to *data* received from *address*; return what to send."""
        address: Tuple[str, int] = tuple(address)
        try:
            message = decode_request(data)
        except PacketSizeError as exc:
            return self._bad_packet(exc, address)
        except ProtocolError:
            self._say("recieved Unknown packet")
            return []

        if isinstance(message, LoginRequest):
            return self._login(message, address)
        if isinstance(message, LogoutRequest):
            return self._logout(address)
        if isinstance(message, JoinRequest):
            return self._join(message.channel, address)
        if isinstance(message, LeaveRequest):
            return self._leave(message.channel, address)
        if isinstance(message, ListRequest):
            return self._list(address)
        if isinstance(message, WhoRequest):
            return self._who(message.channel, address)
        if isinstance(message, SayRequest):
            return self._client_say(message, address)
        if isinstance(message, S2SJoin):
            return self.federation.handle_join(message.channel, address)
        if isinstance(message, S2SSay):
            return self.federation.handle_say(message, address)
        if isinstance(message, S2SLeave):
            return self.federation.handle_leave(message.channel, address)
        self._say("recieved Unknown packet")
        return []

    def tick(self) -> List[Outgoing]:
        """Advance the subscription clocks by one second."""
        return self.federation.tick()

    def _bad_packet(self, exc: PacketSizeError, address: Address) -> List[Outgoing]:
        if exc.kind in _CLIENT_PACKET_NAMES:
            self._say(
                f"Bad packet, expecting packet of size {exc.expected}, got {exc.actual}"
            )
            name = _CLIENT_PACKET_NAMES[exc.kind]
            return [Outgoing(TextError(f"Error: Sent bad {name} Packet"), address)]
        if exc.kind in _SERVER_PACKETS:
            self._say(f"bad packet, got {exc.actual}, when expecting {exc.expected} bytes")
            return []
        self._say("recieved Unknown packet")
        return []

    def _login(self, message: LoginRequest, address: Address) -> List[Outgoing]:
        self.users.add(message.username, address)
        self._say(f"recv Request login {message.username}", address)
        return []

    def _logout(self, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if username is None:
            return []
        self._say(f"{username} logs out")
        for channel in self.channels:
            self.channels.remove_user(channel, username)
            if not self.channels.members(channel):
                self._say(f"removing empty channel {channel} locally")
                self.channels.remove_channel(channel)
        self.users.remove(username)
        return []

    def _join(self, channel: str, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if username is None or self.channels.has_member(channel, username):
            return []
        self._say(f"recv Request join {username} {channel}", address)
        self.channels.add_user(channel, username, address)
        return self.federation.subscribe(channel)

    def _leave(self, channel: str, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if username is None:
            return []
        if channel not in self.channels:
            self._say(f"{username} trying to leave a non-existent channel {channel}")
            return [Outgoing(TextError(f"Error: No channel by the name {channel}"), address)]
        if not self.channels.has_member(channel, username):
            self._say(
                f"{username} is trying to leave channel {channel} "
                "where he/she is not a member"
            )
            return [Outgoing(TextError(f"Error: You are not in channel {channel}"), address)]
        self._say(f"{username} leaves channel {channel}")
        self.channels.remove_user(channel, username)
        if not self.channels.members(channel):
            self._say(f"{channel} channel empty removing locally")
            self.channels.remove_channel(channel)
        return []

    def _list(self, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if username is None:
            return []
        reply = Outgoing(TextList(self.channels.names()), address)
        self._say(f"{username} lists channels")
        return [reply]

    def _who(self, channel: str, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if channel not in self.channels:
            self._say(
                f"{username or ''} trying to list users in non-existing channel {channel}"
            )
            return [Outgoing(TextError(f"Error: No channel by the name {channel}"), address)]
        if username is None:
            return []
        names = [member.username for member in self.channels.members(channel)]
        self._say(f"{username} lists users in channel {channel}")
        return [Outgoing(TextWho(channel, names), address)]

    def _client_say(self, message: SayRequest, address: Address) -> List[Outgoing]:
        username = self.users.name_for(address)
        if username is None:
            return []
        channel, text = message.channel, message.text
        self._say(f'recv Request say {username} {channel} "{text}"', address)
        out: List[Outgoing] = []
        if channel in self.channels:
            reply = TextSay(channel, username, text)
            out.extend(Outgoing(reply, m.address) for m in self.channels.members(channel))
        out.extend(self.federation.forward_say(username, channel, text))
        return out