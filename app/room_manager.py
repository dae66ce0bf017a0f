"""
Room Registry - authoritative room metadata and membership.
Gatekeeper for every room-scoped operation.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from errors import RoomNotFound

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """Represents a single relay room."""
    room_id: str
    host_id: str
    created_at: int
    e2ee_enabled: bool = False
    # user_id -> joined-at instant, insertion ordered
    members: Dict[str, int] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        return len(self.members)

    def add_member(self, user_id: str, joined_at: int) -> bool:
        """Idempotent set insertion; returns True if the user is new."""
        if user_id in self.members:
            return False
        self.members[user_id] = joined_at
        return True


class RoomLocks:
    """
    One lock per normalized room id, created on demand.
    Every store takes the room's lock before touching that room's collections.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, room_id: str) -> threading.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            with self._guard:
                lock = self._locks.setdefault(room_id, threading.Lock())
        return lock


class RoomRegistry:
    """Maps room id to Room. Room ids arrive already normalized."""

    def __init__(self, locks: RoomLocks):
        self.locks = locks
        self.rooms: Dict[str, Room] = {}

    def create_room(self, room_id: str, host_id: str, e2ee_enabled: bool, now: int) -> Tuple[Room, bool]:
        """
        Create a room, or overwrite host/e2ee/timestamp if it already exists.
        Members are never dropped. Returns (room, created).
        """
        with self.locks.get(room_id):
            room = self.rooms.get(room_id)
            if room is None:
                room = Room(room_id=room_id, host_id=host_id, created_at=now,
                            e2ee_enabled=e2ee_enabled)
                room.add_member(host_id, now)
                self.rooms[room_id] = room
                logger.info(f"Room {room_id} created by {host_id} (e2ee={e2ee_enabled})")
                return room, True

            room.host_id = host_id
            room.e2ee_enabled = e2ee_enabled
            room.created_at = now
            room.add_member(host_id, now)
            logger.info(f"Room {room_id} re-created by {host_id}, metadata overwritten")
            return room, False

    def require(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def exists(self, room_id: str) -> bool:
        return room_id in self.rooms

    def join_room(self, room_id: str, user_id: str, now: int) -> Room:
        room = self.require(room_id)
        with self.locks.get(room_id):
            if room.add_member(user_id, now):
                logger.debug(f"User {user_id} joined room {room_id}")
        return room

    def add_member(self, room_id: str, user_id: str, now: int) -> None:
        """Membership side effect of publishing a key. Caller holds the room lock."""
        self.require(room_id).add_member(user_id, now)

    def describe(self, room_id: str) -> dict:
        room = self.require(room_id)
        with self.locks.get(room_id):
            return {
                "e2eeEnabled": room.e2ee_enabled,
                "memberCount": room.member_count,
            }

    def members(self, room_id: str) -> List[tuple]:
        """Snapshot of (user_id, joined_at) pairs in join order."""
        room = self.require(room_id)
        with self.locks.get(room_id):
            return list(room.members.items())

    def room_ids(self) -> List[str]:
        return list(self.rooms.keys())

    def count(self) -> int:
        return len(self.rooms)
