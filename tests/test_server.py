import socket
import threading

import pytest

from duckchat.protocol import (
    JoinRequest,
    ListRequest,
    LoginRequest,
    S2SJoin,
    SayRequest,
    TextError,
    TextList,
    TextSay,
    decode_request,
    decode_text,
    encode,
)
from duckchat.router import ChatServer
from duckchat.server import _serve, _tick_loop, main, parse_peers, run


def _udp(timeout=3.0):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(timeout)
    return sock


@pytest.fixture
def served():
    sock = _udp()
    sock.setblocking(False)
    port = sock.getsockname()[1]
    lines = []
    chat = ChatServer("127.0.0.1", port, log=lines.append)
    lock = threading.Lock()
    stop = threading.Event()
    thread = threading.Thread(target=_serve, args=(sock, chat, lock, stop, 0.05))
    thread.start()
    client = _udp()
    try:
        yield client, ("127.0.0.1", port), lines
    finally:
        stop.set()
        thread.join(2)
        client.close()
        sock.close()


def test_parse_peers_pairs_hosts_with_ports():
    assert parse_peers(["a", "1", "b", "2"]) == [("a", "1"), ("b", "2")]


def test_parse_peers_empty():
    assert parse_peers([]) == []


def test_parse_peers_rejects_odd_count():
    with pytest.raises(ValueError):
        parse_peers(["a", "1", "b"])


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().out


def test_main_with_unpaired_peer(capsys):
    assert main(["127.0.0.1", "4000", "127.0.0.1"]) == 1
    assert "each server must have" in capsys.readouterr().out


def test_main_unresolvable_own_address(capsys):
    assert main(["127.0.0.1", "notaport"]) == 1
    assert "error resolving host name. ." in capsys.readouterr().out


def test_run_unresolvable_peer(capsys):
    assert run("127.0.0.1", "0", [("127.0.0.1", "notaport")]) == 1
    assert "Failed to resolve host name" in capsys.readouterr().err


def test_run_reports_bind_failure(capsys):
    taken = _udp()
    try:
        port = taken.getsockname()[1]
        assert run("127.0.0.1", port, []) == 1
    finally:
        taken.close()
    assert "bind failure" in capsys.readouterr().err


def test_serve_delivers_said_message(served):
    client, server_address, lines = served
    client.sendto(encode(LoginRequest("alice")), server_address)
    client.sendto(encode(JoinRequest("Common")), server_address)
    client.sendto(encode(SayRequest("Common", "hi")), server_address)
    data, _ = client.recvfrom(2048)
    assert decode_text(data) == TextSay("Common", "alice", "hi")
    assert any(line.endswith("recv Request login alice") for line in lines)


def test_serve_answers_list(served):
    client, server_address, _ = served
    client.sendto(encode(LoginRequest("bob")), server_address)
    client.sendto(encode(JoinRequest("Common")), server_address)
    client.sendto(encode(ListRequest()), server_address)
    data, _ = client.recvfrom(2048)
    assert decode_text(data) == TextList(["Common"])


def test_serve_rejects_bad_login_packet(served):
    client, server_address, _ = served
    client.sendto(b"\x00\x00\x00\x00", server_address)
    data, _ = client.recvfrom(2048)
    assert decode_text(data) == TextError("Error: Sent bad Login Packet")


def test_tick_loop_sends_renewal_join():
    neighbour = _udp()
    sock = _udp()
    stop = threading.Event()
    try:
        chat = ChatServer(
            "127.0.0.1",
            sock.getsockname()[1],
            [neighbour.getsockname()[:2]],
            log=lambda line: None,
        )
        chat.federation.subscribe("Common")
        chat.federation.subscriptions[0].timer = 1
        thread = threading.Thread(
            target=_tick_loop, args=(sock, chat, threading.Lock(), stop, 0.05)
        )
        thread.start()
        data, _ = neighbour.recvfrom(2048)
        stop.set()
        thread.join(2)
        assert decode_request(data) == S2SJoin("Common")
        assert chat.federation.subscribed == ["Common"]
    finally:
        stop.set()
        neighbour.close()
        sock.close()