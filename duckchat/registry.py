"""Tables a server keeps: users, channels, neighbour subscriptions, seen ids."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

from duckchat.protocol import IDENTIFY_MAX, MAX_IDENTIFIERS

Address = Tuple[str, int]

RENEW_INTERVAL = 60
SUBSCRIPTION_TIMEOUT = 120


@dataclass(frozen=True)
class User:
    username: str
    address: Address


class ChannelTable:
    """Channels in creation order, each with its members in join order."""

    def __init__(self) -> None:
        self._channels: dict[str, list[User]] = {}

    def add_user(self, channel: str, username: str, address: Address) -> None:
        """Add a member, creating the channel if it does not exist."""
        self._channels.setdefault(channel, []).append(User(username, address))

    def remove_user(self, channel: str, username: str) -> bool:
        """Remove the first member called *username*; report whether one was."""
        members = self._channels.get(channel, [])
        user = next((u for u in members if u.username == username), None)
        if user is None:
            return False
        members.remove(user)
        return True

    def remove_channel(self, channel: str) -> None:
        if channel not in self._channels:
            raise KeyError(f"could not find channel to remove: {channel}")
        del self._channels[channel]

    def members(self, channel: str) -> tuple:
        if channel not in self._channels:
            raise KeyError(channel)
        return tuple(self._channels[channel])

    def has_member(self, channel: str, username: str) -> bool:
        return any(u.username == username for u in self._channels.get(channel, ()))

    def names(self) -> list:
        return list(self._channels)

    def __contains__(self, channel) -> bool:
        return channel in self._channels

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._channels))

    def __len__(self) -> int:
        return len(self._channels)


class UserTable:
    """Logged-in users in login order."""

    def __init__(self) -> None:
        self._users: list[User] = []

    def add(self, username: str, address: Address) -> None:
        self._users.append(User(username, address))

    def remove(self, username: str) -> bool:
        user = next((u for u in self._users if u.username == username), None)
        if user is None:
            return False
        self._users.remove(user)
        return True

    def name_for(self, address: Address) -> Optional[str]:
        """Name of the first user logged in from *address*, or None."""
        return next((u.username for u in self._users if u.address == address), None)

    def __iter__(self) -> Iterator[User]:
        return iter(list(self._users))

    def __len__(self) -> int:
        return len(self._users)


@dataclass
class Subscription:
    name: str
    timer: int = RENEW_INTERVAL
    last_join: int = SUBSCRIPTION_TIMEOUT


@dataclass
class Neighbour:
    """A server and the channels it is subscribed to."""

    host: str
    port: int
    subscriptions: list = field(default_factory=list)

    @property
    def address(self) -> Address:
        return (self.host, self.port)

    @property
    def channels(self) -> list:
        return [s.name for s in self.subscriptions]

    def _find(self, channel: str) -> Optional[Subscription]:
        return next((s for s in self.subscriptions if s.name == channel), None)

    def subscribe(self, channel: str) -> bool:
        """Add a fresh subscription unless one exists; report whether added."""
        if self._find(channel) is not None:
            return False
        self.subscriptions.append(Subscription(channel))
        return True

    def unsubscribe(self, channel: str) -> bool:
        found = self._find(channel)
        if found is None:
            return False
        self.subscriptions.remove(found)
        return True

    def is_subscribed(self, channel: str) -> bool:
        return self._find(channel) is not None

    def refresh(self, channel: str) -> None:
        """Reset the expiry of a subscription, adding it if missing."""
        found = self._find(channel)
        if found is None:
            self.subscribe(channel)
        else:
            found.last_join = SUBSCRIPTION_TIMEOUT


def _normalise(identifier: bytes) -> bytes:
    return bytes(identifier).split(b"\0", 1)[0][: IDENTIFY_MAX - 1]


class IdentifierRing:
    """The most recent message identifiers; the oldest drops out when full."""

    def __init__(self, capacity: int = MAX_IDENTIFIERS) -> None:
        self._ids: deque = deque(maxlen=capacity)

    def add(self, identifier: bytes) -> None:
        self._ids.append(_normalise(identifier))

    def __contains__(self, identifier) -> bool:
        return _normalise(identifier) in self._ids

    def __len__(self) -> int:
        return len(self._ids)