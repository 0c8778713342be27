"""Interactive chat client: a line editor over a raw terminal and a UDP socket."""

from __future__ import annotations

import codecs
import os
import selectors
import socket
import sys
from typing import List, Optional, Tuple

from duckchat.protocol import SAY_MAX, JoinRequest, LoginRequest, encode
from duckchat.session import DEFAULT_CHANNEL, ChatSession
from duckchat.terminal import raw_mode

ERASE = "\b \b"
PROMPT = ">"
BACKSPACES = ("\x7f", "\b")
RECEIVE_SIZE = 2047


class LineEditor:
    """Collects typed characters into a line, echoing them as it goes."""

    def __init__(self, limit: int = SAY_MAX - 1) -> None:
        self.limit = limit
        self._chars: List[str] = []

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def __len__(self) -> int:
        return len(self._chars)

    def feed(self, char: str) -> Tuple[str, Optional[str]]:
        """Take one character; return what to echo and the finished line, if any."""
        if char == "\n":
            line = self.text
            self._chars.clear()
            return "\n", line
        if char in BACKSPACES:
            if not self._chars:
                return "", None
            self._chars.pop()
            return ERASE, None
        if len(self._chars) < self.limit:
            self._chars.append(char)
            return char, None
        return "", None


def _write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _send(sock: socket.socket, address, message) -> None:
    try:
        sock.sendto(encode(message), address)
    except OSError as exc:
        print(f"Failed to send: {exc}", file=sys.stderr)


def _loop(sock, address, session: ChatSession, fd: int) -> int:
    editor = LineEditor()
    decoder = codecs.getincrementaldecoder("utf-8")("replace")
    _write(PROMPT)
    with selectors.DefaultSelector() as selector:
        selector.register(sock, selectors.EVENT_READ)
        selector.register(fd, selectors.EVENT_READ)
        while True:
            ready = {key.fileobj for key, _ in selector.select()}
            if sock in ready:
                try:
                    data = sock.recv(RECEIVE_SIZE)
                except OSError as exc:
                    print(f"Error reciving from server: {exc}", file=sys.stderr)
                else:
                    _write(ERASE * len(editor) + ERASE)
                    for line in session.render(data):
                        _write(line + "\n")
                _write(PROMPT + editor.text)
            if fd in ready:
                chunk = os.read(fd, 1)
                if not chunk:
                    return 0
                for char in decoder.decode(chunk):
                    echo, line = editor.feed(char)
                    _write(echo)
                    if line is not None:
                        requests, notices = session.handle_line(line)
                        for request in requests:
                            _send(sock, address, request)
                        for notice in notices:
                            _write(notice + "\n")
                        if session.closed:
                            return 0
                    if not len(editor) and char not in BACKSPACES:
                        _write(PROMPT)


def run(host: str, port, username: str) -> int:
    """Log in to the server at *host*:*port* and chat until ``/exit``."""
    try:
        terminal = raw_mode(sys.stdin)
        terminal.__enter__()
    except (OSError, ValueError) as exc:
        print(f"error entering raw_mode: {exc}", file=sys.stderr)
        return 1
    try:
        try:
            resolved = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
        except (OSError, UnicodeError):
            print("error resolving host name. .")
            return 1
        address = resolved[0][4]
        session = ChatSession(username)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            _send(sock, address, LoginRequest(username))
            _send(sock, address, JoinRequest(DEFAULT_CHANNEL))
            return _loop(sock, address, session, sys.stdin.fileno())
    finally:
        terminal.__exit__(None, None, None)


def main(argv=None) -> int:
    """Command-line entry: ``client server_host server_port username``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 3:
        print("Usage: client server_socket server_port username")
        return 0
    host, port, username = args
    return run(host, port, username)


if __name__ == "__main__":
    sys.exit(main())