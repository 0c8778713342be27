import struct

import pytest

from duckchat.protocol import (
    JoinRequest,
    LeaveRequest,
    ListRequest,
    LogoutRequest,
    SayRequest,
    TextError,
    TextList,
    TextSay,
    TextWho,
    WhoRequest,
    encode,
)
from duckchat.session import ChatSession, render_text


@pytest.fixture
def session():
    return ChatSession("bob")


def test_starts_in_common(session):
    assert session.channels == ["Common"]
    assert session.active == "Common"
    assert session.closed is False


def test_plain_text_is_said_on_active_channel(session):
    assert session.handle_line("hello there") == ([SayRequest("Common", "hello there")], [])


def test_empty_line_sends_empty_say(session):
    assert session.handle_line("") == ([SayRequest("Common", "")], [])


def test_join_switches_active_and_records_channel(session):
    requests, notices = session.handle_line("/join games")
    assert requests == [JoinRequest("games")]
    assert notices == []
    assert session.active == "games"
    assert session.channels == ["Common", "games"]


def test_join_without_channel_is_unknown(session):
    assert session.handle_line("/join") == ([], ["*Unknown command"])
    assert session.channels == ["Common"]


def test_unrecognised_command(session):
    assert session.handle_line("/dance") == ([], ["*Unknown Command"])


def test_leave_active_channel_silences_say(session):
    requests, _ = session.handle_line("/leave Common")
    assert requests == [LeaveRequest("Common")]
    assert session.active == ""
    assert session.channels == []
    assert session.handle_line("anyone?") == ([], [])


def test_leave_other_channel_keeps_active(session):
    session.handle_line("/join games")
    session.handle_line("/switch Common")
    session.handle_line("/leave games")
    assert session.active == "Common"
    assert session.channels == ["Common"]


def test_switch_to_unknown_channel(session):
    assert session.handle_line("/switch nowhere") == (
        [],
        ["You have not subscribed to channel nowhere"],
    )
    assert session.active == "Common"


def test_switch_sends_nothing(session):
    session.handle_line("/join games")
    assert session.handle_line("/switch Common") == ([], [])
    assert session.active == "Common"


def test_exit_closes(session):
    assert session.handle_line("/exit") == ([LogoutRequest()], [])
    assert session.closed is True


def test_exit_with_argument_is_unknown(session):
    assert session.handle_line("/exit now") == ([], ["*Unknown command"])
    assert session.closed is False


def test_list_and_who(session):
    assert session.handle_line("/list") == ([ListRequest()], [])
    assert session.handle_line("/who Common") == ([WhoRequest("Common")], [])


def test_extra_spaces_are_ignored_in_commands(session):
    assert session.handle_line("   /list   ") == ([ListRequest()], [])


def test_long_channel_name_is_clipped(session):
    name = "x" * 40
    session.handle_line(f"/join {name}")
    assert session.active == name[:31]


def test_render_say(session):
    data = encode(TextSay("Common", "alice", "hi"))
    assert session.render(data) == ["[Common][alice]: hi"]


def test_render_list():
    data = encode(TextList(("a", "b")))
    assert render_text(data) == ["Existing channels:", " a", " b"]


def test_render_who():
    data = encode(TextWho("games", ("alice", "bob")))
    assert render_text(data) == ["Users on channel games:", " alice", " bob"]


def test_render_error():
    data = encode(TextError("Error: No channel by the name x"))
    assert render_text(data) == ["Error: No channel by the name x"]


def test_render_short_say():
    data = encode(TextSay("Common", "alice", "hi"))[:-1]
    assert render_text(data) == [
        f"Error: expected packet length was 132, got {len(data)}"
    ]


def test_render_bad_who_reports_size_without_channel():
    data = encode(TextWho("games", ("alice",)))[:-2]
    (line,) = render_text(data)
    assert line.startswith("Error: expected packet length was 40,")


def test_render_unknown_type():
    assert render_text(struct.pack("<i", 9)) == ["error: Recieved Unkown Packet"]