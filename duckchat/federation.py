"""Channel subscriptions shared between servers and the messages they exchange."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Union

from duckchat.protocol import IDENTIFY_MAX, S2SJoin, S2SLeave, S2SSay, TextSay, encode
from duckchat.registry import (
    RENEW_INTERVAL,
    Address,
    ChannelTable,
    IdentifierRing,
    Neighbour,
    Subscription,
)


def new_identifier() -> bytes:
    """Random bytes that tag one message as it travels between servers."""
    return os.urandom(IDENTIFY_MAX - 1)


@dataclass(frozen=True)
class Outgoing:
    """A message and the address it is to be sent to."""

    message: object
    address: Address

    @property
    def data(self) -> bytes:
        return encode(self.message)


class Federation:
    """One server's view of its neighbours and the channels they share."""

    def __init__(
        self,
        host: str,
        port: int,
        neighbours: Iterable[Union[Neighbour, Address]] = (),
        channels: Optional[ChannelTable] = None,
        identifiers: Optional[IdentifierRing] = None,
        new_id: Callable[[], bytes] = new_identifier,
        log: Callable[[str], None] = print,
    ) -> None:
        self.host = host
        self.port = port
        self.neighbours: List[Neighbour] = [
            n if isinstance(n, Neighbour) else Neighbour(n[0], n[1]) for n in neighbours
        ]
        self.channels = channels if channels is not None else ChannelTable()
        self.identifiers = identifiers if identifiers is not None else IdentifierRing()
        self.subscriptions: List[Subscription] = []
        self._new_id = new_id
        self._log = log

    @property
    def subscribed(self) -> list:
        """Names of the channels this server is subscribed to."""
        return [s.name for s in self.subscriptions]

    def is_subscribed(self, channel: str) -> bool:
        return any(s.name == channel for s in self.subscriptions)

    def _unsubscribe(self, channel: str) -> None:
        for sub in self.subscriptions:
            if sub.name == channel:
                self.subscriptions.remove(sub)
                return

    def _say(self, text: str, peer: Optional[Address] = None) -> None:
        prefix = f"{self.host}:{self.port}"
        if peer is not None:
            prefix += f" {peer[0]}:{peer[1]}"
        self._log(f"{prefix} {text}")

    def neighbour_at(self, address: Address) -> Optional[Neighbour]:
        """The neighbour whose address is *address*, or None."""
        return next((n for n in self.neighbours if n.address == tuple(address)), None)

    def _join_all(self, channel: str, skip: Optional[Address], verb: str) -> List[Outgoing]:
        out = []
        message = S2SJoin(channel)
        for neighbour in self.neighbours:
            if skip is not None and neighbour.address == tuple(skip):
                continue
            neighbour.subscribe(channel)
            self._say(f"{verb} {channel}", neighbour.address)
            out.append(Outgoing(message, neighbour.address))
        return out

    def subscribe(self, channel: str) -> List[Outgoing]:
        """Subscribe this server to *channel*, announcing it to every neighbour."""
        if self.is_subscribed(channel):
            return []
        self.subscriptions.append(Subscription(channel))
        return self._join_all(channel, None, "send S2S Join")

    def forward_say(self, username: str, channel: str, text: str) -> List[Outgoing]:
        """Pass a message said by a local user to neighbours subscribed to *channel*."""
        message = S2SSay(self._new_id(), username, channel, text)
        out = []
        for neighbour in self.neighbours:
            for _ in (name for name in neighbour.channels if name == channel):
                self._say(f'send S2S say {username} {channel} "{text}"', neighbour.address)
                out.append(Outgoing(message, neighbour.address))
        return out

    def handle_join(self, channel: str, sender: Address) -> List[Outgoing]:
        """A neighbour subscribed to *channel*; spread the join if it is new here."""
        sender = tuple(sender)
        self._say(f"recv S2S Join {channel}", sender)
        neighbour = self.neighbour_at(sender)
        if neighbour is not None:
            neighbour.refresh(channel)
        if self.is_subscribed(channel):
            return []
        self.subscriptions.append(Subscription(channel))
        return self._join_all(channel, sender, "send S2S Join")

    def _leave_to(self, channel: str, sender: Address) -> Outgoing:
        self._unsubscribe(channel)
        return Outgoing(S2SLeave(channel), sender)

    def handle_say(self, message: S2SSay, sender: Address) -> List[Outgoing]:
        """Deliver a message from a neighbour locally and pass it further on."""
        sender = tuple(sender)
        channel, username, text = message.channel, message.username, message.text
        if message.identifier in self.identifiers:
            self._say(f"Loop detected, send S2S Leave {channel}", sender)
            return [self._leave_to(channel, sender)]

        self.identifiers.add(message.identifier)
        self._say(f'recv S2S say {username} {channel} "{text}"', sender)
        out: List[Outgoing] = []

        has_clients = channel in self.channels
        if has_clients:
            reply = TextSay(channel, username, text)
            for position, member in enumerate(self.channels.members(channel)):
                if position == 0:
                    self._say(
                        f'send say message "{text}" in {channel} from {username}',
                        member.address,
                    )
                out.append(Outgoing(reply, member.address))

        has_servers = False
        for neighbour in self.neighbours:
            if neighbour.address == sender or not neighbour.is_subscribed(channel):
                continue
            has_servers = True
            self._say(f'send S2S say {username} {channel} "{text}"', neighbour.address)
            out.append(Outgoing(message, neighbour.address))

        if not has_servers and not has_clients:
            self._say(f"send S2S Leave {channel}", sender)
            out.append(self._leave_to(channel, sender))
        return out

    def handle_leave(self, channel: str, sender: Address) -> List[Outgoing]:
        """A neighbour dropped its subscription to *channel*."""
        sender = tuple(sender)
        self._say(f"recv 2S2 Leave {channel}", sender)
        neighbour = self.neighbour_at(sender)
        if neighbour is not None:
            neighbour.unsubscribe(channel)
        return []

    def tick(self) -> List[Outgoing]:
        """Advance the clocks by one second: expire and renew subscriptions."""
        for neighbour in self.neighbours:
            for sub in reversed(list(neighbour.subscriptions)):
                if sub.last_join > 0:
                    sub.last_join -= 1
                if sub.last_join == 0:
                    self._say(
                        f"{neighbour.host}:{neighbour.port} forcefully removing {sub.name}"
                    )
                    neighbour.unsubscribe(sub.name)

        out: List[Outgoing] = []
        for sub in self.subscriptions:
            if sub.timer > 0:
                sub.timer -= 1
            if sub.timer == 0:
                sub.timer = RENEW_INTERVAL
                out.extend(self._join_all(sub.name, None, "send renew S2S Join"))
        return out