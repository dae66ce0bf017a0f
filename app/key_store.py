"""
Key Store - public keys per (room, user) and one wrapped room key per room.

Public keys are last-write-wins. Room keys are write-once: the relay cannot
verify where a key came from, so the first successful write is permanent.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from errors import Conflict, NotFound
from room_manager import RoomLocks, RoomRegistry
from security import log_security_event

logger = logging.getLogger(__name__)


@dataclass
class PublicKeyEntry:
    public_key: str
    timestamp: int


@dataclass
class RoomKey:
    encrypted_key: str
    timestamp: int


class KeyStore:

    def __init__(self, registry: RoomRegistry, locks: RoomLocks):
        self.registry = registry
        self.locks = locks
        self.public_keys: Dict[str, Dict[str, PublicKeyEntry]] = {}
        self.room_keys: Dict[str, RoomKey] = {}

    def init_room(self, room_id: str) -> None:
        with self.locks.get(room_id):
            self.public_keys.setdefault(room_id, {})

    def put_public_key(self, room_id: str, user_id: str, public_key: str, now: int) -> PublicKeyEntry:
        self.registry.require(room_id)
        with self.locks.get(room_id):
            entry = PublicKeyEntry(public_key=public_key, timestamp=now)
            replaced = user_id in self.public_keys.setdefault(room_id, {})
            self.public_keys[room_id][user_id] = entry
            self.registry.add_member(room_id, user_id, now)
        logger.info(f"Public key {'replaced' if replaced else 'stored'} for {user_id} in room {room_id}")
        return entry

    def get_public_key(self, room_id: str, user_id: str) -> PublicKeyEntry:
        entry = self.public_keys.get(room_id, {}).get(user_id)
        if entry is None:
            raise NotFound(f"No public key for {user_id} in room {room_id}")
        return entry

    def put_room_key(self, room_id: str, encrypted_key: str, now: int) -> RoomKey:
        self.registry.require(room_id)
        with self.locks.get(room_id):
            if room_id in self.room_keys:
                log_security_event("room_key_overwrite_rejected", {"room": room_id})
                raise Conflict("Key already exists")
            entry = RoomKey(encrypted_key=encrypted_key, timestamp=now)
            self.room_keys[room_id] = entry
        logger.info(f"Room key stored for room {room_id}")
        return entry

    def get_room_key(self, room_id: str) -> RoomKey:
        entry = self.room_keys.get(room_id)
        if entry is None:
            raise NotFound(f"No room key for room {room_id}")
        return entry

    def list_members(self, room_id: str) -> List[dict]:
        """Current membership joined with whatever public key is on file."""
        members: List[Tuple[str, int]] = self.registry.members(room_id)
        with self.locks.get(room_id):
            keys = self.public_keys.get(room_id, {})
            return [
                {
                    "userId": user_id,
                    "publicKey": keys[user_id].public_key if user_id in keys else "",
                    "joinedAt": joined_at,
                }
                for user_id, joined_at in members
            ]
