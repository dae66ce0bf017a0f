import pytest

from errors import InvalidArgument, RoomNotFound
from room_manager import RoomLocks, RoomRegistry


@pytest.fixture
def registry():
    return RoomRegistry(RoomLocks())


class TestRegistry:

    def test_create_room_adds_host_as_member(self, registry):
        room, created = registry.create_room("ABC", "host", True, now=10)

        assert created
        assert room.members == {"host": 10}
        assert room.e2ee_enabled is True
        assert registry.exists("ABC")

    def test_recreate_overwrites_metadata_but_keeps_members(self, registry):
        registry.create_room("ABC", "host", False, now=10)
        registry.join_room("ABC", "guest", now=11)

        room, created = registry.create_room("ABC", "new-host", True, now=20)

        assert not created
        assert room.host_id == "new-host"
        assert room.e2ee_enabled is True
        assert room.created_at == 20
        assert list(room.members) == ["host", "guest", "new-host"]

    def test_join_is_idempotent(self, registry):
        registry.create_room("ABC", "host", False, now=10)
        registry.join_room("ABC", "guest", now=11)
        registry.join_room("ABC", "guest", now=12)

        assert registry.members("ABC") == [("host", 10), ("guest", 11)]

    def test_join_unknown_room(self, registry):
        with pytest.raises(RoomNotFound):
            registry.join_room("NOPE", "guest", now=1)

    def test_describe(self, registry):
        registry.create_room("ABC", "host", True, now=10)
        registry.join_room("ABC", "guest", now=11)

        assert registry.describe("ABC") == {"e2eeEnabled": True, "memberCount": 2}

    def test_describe_unknown_room(self, registry):
        with pytest.raises(RoomNotFound):
            registry.describe("NOPE")
        assert registry.exists("NOPE") is False


def test_room_locks_are_shared_per_room():
    locks = RoomLocks()
    assert locks.get("A") is locks.get("A")
    assert locks.get("A") is not locks.get("B")


class TestNormalization:

    def test_case_and_whitespace_collide(self, relay):
        relay.create_room("abc", "u1")

        assert relay.room_exists("ABC ")
        assert relay.room_exists("  aBc")
        relay.join_room("ABC ", "u2")
        assert relay.describe_room("abc")["memberCount"] == 2

    def test_blank_room_id_rejected(self, relay):
        with pytest.raises(InvalidArgument):
            relay.create_room("   ", "u1")

    def test_missing_host_rejected(self, relay):
        with pytest.raises(InvalidArgument):
            relay.create_room("abc", "")
        assert not relay.room_exists("abc")
