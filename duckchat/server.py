"""Chat server command: a UDP socket, the packet router and a ticking clock."""

from __future__ import annotations

import selectors
import socket
import sys
import threading
from typing import Iterable, List, Sequence, Tuple

from duckchat.federation import Outgoing
from duckchat.registry import Address
from duckchat.router import ChatServer

RECEIVE_SIZE = 1023
SELECT_TIMEOUT = 5.0
TICK_INTERVAL = 1.0

USAGE = "Usage: server <i>_domain_name <i>_ port_num"
PAIR_USAGE = "Usage: each server must have a both a domain name and port num"


def _log(line: str) -> None:
    print(line, flush=True)


def parse_peers(args: Sequence[str]) -> List[Tuple[str, str]]:
    """Split ``host port host port ...`` into (host, port) pairs.

    Raises ValueError when a host has no port to go with it.
    """
    args = list(args)
    if len(args) % 2:
        raise ValueError("each server must have both a domain name and port num")
    return list(zip(args[::2], args[1::2]))


def _resolve(host: str, port) -> Address:
    """IPv4 address and port that *host* and *port* name."""
    infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
    ip, number = infos[0][4][:2]
    return (ip, number)


def _send_all(sock: socket.socket, outgoing: Iterable[Outgoing]) -> None:
    for item in outgoing:
        try:
            sock.sendto(item.data, item.address)
        except OSError as exc:
            print(f"error sending bytes: {exc}", file=sys.stderr)


def _tick_loop(
    sock: socket.socket,
    chat: ChatServer,
    lock: threading.Lock,
    stop: threading.Event,
    interval: float = TICK_INTERVAL,
) -> None:
    """Advance the subscription clocks every *interval* seconds until *stop*."""
    while not stop.wait(interval):
        with lock:
            _send_all(sock, chat.tick())


def _serve(
    sock: socket.socket,
    chat: ChatServer,
    lock: threading.Lock,
    stop: threading.Event,
    poll: float = SELECT_TIMEOUT,
) -> None:
    """Receive packets on *sock* and answer them until *stop* is set."""
    with selectors.DefaultSelector() as selector:
        selector.register(sock, selectors.EVENT_READ)
        while not stop.is_set():
            if not selector.select(poll):
                continue
            with lock:
                try:
                    data, address = sock.recvfrom(RECEIVE_SIZE)
                except BlockingIOError:
                    continue
                except OSError as exc:
                    print(f"error reading bytes sent to socket: {exc}", file=sys.stderr)
                    continue
                _send_all(sock, chat.handle(data, address[:2]))


def run(host: str, port, peers: Iterable[Tuple[str, object]]) -> int:
    """Serve chat on *host*:*port*, linked to the neighbour servers *peers*."""
    try:
        own = _resolve(host, port)
    except (OSError, UnicodeError):
        print("error resolving host name. .")
        return 1

    neighbours: List[Address] = []
    for peer_host, peer_port in peers:
        try:
            neighbours.append(_resolve(peer_host, peer_port))
        except (OSError, UnicodeError) as exc:
            print(f"Failed to resolve host name: {exc}", file=sys.stderr)
            return 1

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setblocking(False)
        try:
            sock.bind(own)
        except OSError as exc:
            print(f"bind failure: {exc}", file=sys.stderr)
            return 1

        chat = ChatServer(own[0], own[1], neighbours, log=_log)
        lock = threading.Lock()
        stop = threading.Event()
        ticker = threading.Thread(
            target=_tick_loop, args=(sock, chat, lock, stop), daemon=True
        )
        ticker.start()
        try:
            _serve(sock, chat, lock, stop)
        except KeyboardInterrupt:
            pass
        finally:
            stop.set()
            ticker.join(TICK_INTERVAL * 2)
    return 0


def main(argv=None) -> int:
    """Command-line entry: ``server host port [peer_host peer_port ...]``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print(USAGE)
        return 1
    try:
        peers = parse_peers(args[2:])
    except ValueError:
        print(PAIR_USAGE)
        return 1
    return run(args[0], args[1], peers)


if __name__ == "__main__":
    sys.exit(main())