import pytest

from duckchat.registry import (
    RENEW_INTERVAL,
    SUBSCRIPTION_TIMEOUT,
    ChannelTable,
    IdentifierRing,
    Neighbour,
    Subscription,
    User,
    UserTable,
)

ALICE = ("127.0.0.1", 5000)
BOB = ("127.0.0.1", 5001)


def test_add_user_creates_channel():
    table = ChannelTable()
    table.add_user("Common", "alice", ALICE)
    assert "Common" in table
    assert table.members("Common") == (User("alice", ALICE),)


def test_members_in_join_order():
    table = ChannelTable()
    table.add_user("c", "alice", ALICE)
    table.add_user("c", "bob", BOB)
    assert [u.username for u in table.members("c")] == ["alice", "bob"]


def test_names_in_creation_order_after_removal():
    table = ChannelTable()
    for name in ("a", "b", "c"):
        table.add_user(name, "alice", ALICE)
    table.remove_channel("b")
    assert table.names() == ["a", "c"]
    assert len(table) == 2


def test_remove_user():
    table = ChannelTable()
    table.add_user("c", "alice", ALICE)
    table.add_user("c", "bob", BOB)
    assert table.remove_user("c", "alice") is True
    assert not table.has_member("c", "alice")
    assert table.has_member("c", "bob")


def test_remove_user_leaves_empty_channel():
    table = ChannelTable()
    table.add_user("c", "alice", ALICE)
    table.remove_user("c", "alice")
    assert "c" in table
    assert table.members("c") == ()


def test_remove_missing_user():
    table = ChannelTable()
    assert table.remove_user("nowhere", "alice") is False
    table.add_user("c", "alice", ALICE)
    assert table.remove_user("c", "bob") is False


def test_remove_missing_channel_raises():
    with pytest.raises(KeyError):
        ChannelTable().remove_channel("nowhere")


def test_members_of_missing_channel_raises():
    with pytest.raises(KeyError):
        ChannelTable().members("nowhere")


def test_has_member_missing_channel():
    assert ChannelTable().has_member("nowhere", "alice") is False


def test_user_table_lookup():
    users = UserTable()
    users.add("alice", ALICE)
    users.add("bob", BOB)
    assert users.name_for(BOB) == "bob"
    assert users.name_for(("10.0.0.1", 1)) is None


def test_user_table_first_match_wins():
    users = UserTable()
    users.add("alice", ALICE)
    users.add("again", ALICE)
    assert users.name_for(ALICE) == "alice"


def test_user_table_remove():
    users = UserTable()
    users.add("alice", ALICE)
    assert users.remove("alice") is True
    assert users.name_for(ALICE) is None
    assert len(users) == 0
    assert users.remove("alice") is False


def test_subscription_defaults():
    sub = Subscription("c")
    assert sub.timer == RENEW_INTERVAL == 60
    assert sub.last_join == SUBSCRIPTION_TIMEOUT == 120


def test_neighbour_address():
    assert Neighbour("127.0.0.1", 4000).address == ("127.0.0.1", 4000)


def test_neighbour_subscribe_once():
    peer = Neighbour("127.0.0.1", 4000)
    assert peer.subscribe("c") is True
    assert peer.subscribe("c") is False
    assert peer.channels == ["c"]
    assert peer.is_subscribed("c")


def test_neighbour_unsubscribe():
    peer = Neighbour("127.0.0.1", 4000)
    peer.subscribe("a")
    peer.subscribe("b")
    assert peer.unsubscribe("a") is True
    assert peer.channels == ["b"]
    assert peer.unsubscribe("a") is False


def test_neighbour_refresh_resets_expiry():
    peer = Neighbour("127.0.0.1", 4000)
    peer.subscribe("c")
    peer.subscriptions[0].last_join = 3
    peer.refresh("c")
    assert peer.subscriptions[0].last_join == SUBSCRIPTION_TIMEOUT


def test_neighbour_refresh_adds_missing():
    peer = Neighbour("127.0.0.1", 4000)
    peer.refresh("c")
    assert peer.is_subscribed("c")


def test_identifier_ring_membership():
    ring = IdentifierRing()
    ring.add(b"abcdefg")
    assert b"abcdefg" in ring
    assert b"zzzzzzz" not in ring


def test_identifier_ring_normalises():
    ring = IdentifierRing()
    ring.add(b"ab\0xyz")
    assert b"ab" in ring
    ring.add(b"0123456789")
    assert b"0123456" in ring


def test_identifier_ring_evicts_oldest():
    ring = IdentifierRing()
    ids = [f"id{i:04d}".encode() for i in range(51)]
    for identifier in ids:
        ring.add(identifier)
    assert len(ring) == 50
    assert ids[0] not in ring
    assert ids[1] in ring
    assert ids[-1] in ring


def test_identifier_ring_custom_capacity():
    ring = IdentifierRing(capacity=2)
    for identifier in (b"a", b"b", b"c"):
        ring.add(identifier)
    assert b"a" not in ring
    assert len(ring) == 2