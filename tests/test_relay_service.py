"""End-to-end flows through the relay service."""
import pytest

from errors import RoomNotFound


def test_lobby_scenario(relay, clock):
    relay.create_room("LOBBY", "u1")
    relay.join_room("LOBBY", "u2")

    relay.send_directed("LOBBY", "u1", {"u2": "blob1"})

    inbox = relay.list_directed("LOBBY", "u2")
    assert len(inbox) == 1
    assert inbox[0]["encryptedData"] == "blob1"
    assert inbox[0]["senderId"] == "u1"
    assert relay.list_directed("LOBBY", "u1") == []

    clock.advance(hours=24)

    assert relay.list_directed("LOBBY", "u2") == []


def test_unknown_room_leaves_every_store_untouched(relay):
    with pytest.raises(RoomNotFound):
        relay.send_broadcast("never", "u1", "x")
    with pytest.raises(RoomNotFound):
        relay.send_directed("never", "u1", {"u2": "x"})
    with pytest.raises(RoomNotFound):
        relay.put_room_key("never", "k")
    with pytest.raises(RoomNotFound):
        relay.put_public_key("never", "u1", "pk")
    with pytest.raises(RoomNotFound):
        relay.append_receipt("never", "m", "u2", "read")

    assert relay.rooms.rooms == {}
    assert relay.messages.streams == {}
    assert relay.keys.public_keys == {} and relay.keys.room_keys == {}
    assert relay.receipts.receipts == {}


def test_recreate_keeps_messages_and_room_key(relay):
    relay.create_room("R1", "u1")
    relay.send_broadcast("R1", "u1", "x")
    relay.put_room_key("R1", "wrapped")

    relay.create_room("r1", "u2", e2ee_enabled=True)

    assert len(relay.list_broadcast("R1")) == 1
    assert relay.get_room_key("R1")["encryptedKey"] == "wrapped"
    assert relay.describe_room("R1") == {"e2eeEnabled": True, "memberCount": 2}


def test_room_info(relay):
    assert relay.room_info("nope") == {"exists": False, "roomId": "NOPE"}

    relay.create_room("abc", "u1", e2ee_enabled=True)

    assert relay.room_info(" abc ") == {
        "exists": True,
        "roomId": "ABC",
        "e2eeEnabled": True,
        "userCount": 1,
    }


def test_status_counters(relay, clock):
    relay.create_room("R1", "u1")
    relay.create_room("R1", "u1")
    relay.send_broadcast("R1", "u1", "x")
    relay.send_directed("R1", "u1", {"a": "1", "b": "2"})
    relay.record_request()
    clock.advance(ms=2500)

    status = relay.status()

    assert status["rooms"] == 1
    assert status["totalRooms"] == 1
    assert status["totalMessages"] == 1
    assert status["totalE2EEMessages"] == 1
    assert status["storedMessages"] == 3
    assert status["requests"] == 1
    assert status["uptime"] == 2.5
