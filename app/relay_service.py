"""
Relay Service - the contract the HTTP layer calls.

Validates required fields and normalizes the room id before any store is
touched, then orchestrates the registry, key store, message store and
receipt log. Also owns the observability counters.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

from errors import InvalidArgument
from expiry import Clock, MS_PER_SECOND, now_ms
from key_store import KeyStore
from message_store import MessageStore
from receipt_log import ReceiptLog
from room_manager import RoomLocks, RoomRegistry
from security import normalize_room_id, validate_identifier, validate_payload

logger = logging.getLogger(__name__)


@dataclass
class Counters:
    """Process-wide counters, for the status endpoint only."""
    started_at: int
    total_rooms: int = 0
    total_messages: int = 0
    total_e2ee_messages: int = 0
    requests: int = 0


class RelayService:

    def __init__(self, clock: Clock = now_ms, ttl_ms: Optional[int] = None,
                 receipt_visibility_ms: Optional[int] = None,
                 receipt_retention_ms: Optional[int] = None):
        self.clock = clock
        self.locks = RoomLocks()
        self.rooms = RoomRegistry(self.locks)
        self.keys = KeyStore(self.rooms, self.locks)
        self.messages = MessageStore(self.rooms, self.locks, ttl_ms=ttl_ms)
        self.receipts = ReceiptLog(self.rooms, self.locks,
                                   visibility_ms=receipt_visibility_ms,
                                   retention_ms=receipt_retention_ms)
        self.counters = Counters(started_at=clock())

    # ============ ROOMS ============

    def create_room(self, room_id: str, host_id: str, e2ee_enabled: bool = False) -> dict:
        room_id = normalize_room_id(room_id)
        host_id = validate_identifier(host_id, "hostId")
        now = self.clock()
        room, created = self.rooms.create_room(room_id, host_id, bool(e2ee_enabled), now)
        if created:
            self.messages.init_room(room_id)
            self.keys.init_room(room_id)
            self.receipts.init_room(room_id)
            self.counters.total_rooms += 1
        return {"roomId": room.room_id, "e2eeEnabled": room.e2ee_enabled, "timestamp": now}

    def join_room(self, room_id: str, user_id: str) -> dict:
        room_id = normalize_room_id(room_id)
        user_id = validate_identifier(user_id, "userId")
        now = self.clock()
        self.rooms.join_room(room_id, user_id, now)
        return {"roomId": room_id, "timestamp": now}

    def room_exists(self, room_id: str) -> bool:
        return self.rooms.exists(normalize_room_id(room_id))

    def describe_room(self, room_id: str) -> dict:
        return self.rooms.describe(normalize_room_id(room_id))

    def room_info(self, room_id: str) -> dict:
        """Existence check plus description; an absent room is not an error here."""
        room_id = normalize_room_id(room_id)
        if not self.rooms.exists(room_id):
            return {"exists": False, "roomId": room_id}
        info = self.rooms.describe(room_id)
        return {
            "exists": True,
            "roomId": room_id,
            "e2eeEnabled": info["e2eeEnabled"],
            "userCount": info["memberCount"],
        }

    def list_users(self, room_id: str) -> dict:
        users = self.keys.list_members(normalize_room_id(room_id))
        return {"users": users, "totalUsers": len(users)}

    # ============ KEYS ============

    def put_public_key(self, room_id: str, user_id: str, public_key: str) -> None:
        room_id = normalize_room_id(room_id)
        user_id = validate_identifier(user_id, "userId")
        public_key = validate_payload(public_key, "publicKey")
        self.keys.put_public_key(room_id, user_id, public_key, self.clock())

    def get_public_key(self, room_id: str, user_id: str) -> dict:
        entry = self.keys.get_public_key(normalize_room_id(room_id),
                                         validate_identifier(user_id, "userId"))
        return {"publicKey": entry.public_key, "timestamp": entry.timestamp}

    def put_room_key(self, room_id: str, encrypted_key: str) -> None:
        room_id = normalize_room_id(room_id)
        encrypted_key = validate_payload(encrypted_key, "encryptedKey")
        self.keys.put_room_key(room_id, encrypted_key, self.clock())

    def get_room_key(self, room_id: str) -> dict:
        entry = self.keys.get_room_key(normalize_room_id(room_id))
        return {"encryptedKey": entry.encrypted_key, "timestamp": entry.timestamp}

    # ============ MESSAGES ============

    def send_broadcast(self, room_id: str, sender_id: str, message: str,
                       expiration_time: Optional[int] = None) -> dict:
        room_id = normalize_room_id(room_id)
        sender_id = validate_identifier(sender_id, "senderId")
        message = validate_payload(message, "message")
        stored = self.messages.send_broadcast(room_id, sender_id, message, self.clock(),
                                              explicit_expiry=expiration_time)
        self.counters.total_messages += 1
        return {"messageId": stored.id, "timestamp": stored.timestamp}

    def send_directed(self, room_id: str, sender_id: str,
                      recipient_payloads: Optional[Mapping[str, str]],
                      expiration_time: Optional[int] = None) -> dict:
        room_id = normalize_room_id(room_id)
        sender_id = validate_identifier(sender_id, "senderId")
        if not recipient_payloads:
            raise InvalidArgument("recipientPayloads must not be empty")
        payloads = {}
        for recipient_id, blob in recipient_payloads.items():
            recipient_id = validate_identifier(recipient_id, "recipientId")
            if recipient_id in payloads:
                raise InvalidArgument(f"duplicate recipientId {recipient_id}")
            payloads[recipient_id] = validate_payload(blob, "encryptedData")
        records = self.messages.send_directed(room_id, sender_id, payloads, self.clock(),
                                              explicit_expiry=expiration_time)
        self.counters.total_e2ee_messages += 1
        return {
            "messageId": records[0].message_id,
            "recipientCount": len(records),
            "timestamp": records[0].timestamp,
        }

    def list_broadcast(self, room_id: str) -> list:
        messages = self.messages.list_broadcast(normalize_room_id(room_id), self.clock())
        return [m.to_dict() for m in messages]

    def list_directed(self, room_id: str, user_id: str) -> list:
        room_id = normalize_room_id(room_id)
        user_id = validate_identifier(user_id, "userId")
        messages = self.messages.list_directed(room_id, user_id, self.clock())
        return [m.to_dict() for m in messages]

    # ============ RECEIPTS ============

    def append_receipt(self, room_id: str, message_id: str, recipient_id: str,
                       receipt_type: str) -> None:
        room_id = normalize_room_id(room_id)
        message_id = validate_identifier(message_id, "messageId")
        recipient_id = validate_identifier(recipient_id, "recipientId")
        receipt_type = validate_identifier(receipt_type, "type")
        self.receipts.append_receipt(room_id, message_id, recipient_id, receipt_type, self.clock())

    def list_receipts(self, room_id: str) -> list:
        receipts = self.receipts.list_receipts(normalize_room_id(room_id), self.clock())
        return [r.to_dict() for r in receipts]

    # ============ MAINTENANCE ============

    def sweep(self) -> int:
        """Expire messages across every room."""
        return self.messages.sweep_all(self.clock())

    def run_maintenance(self) -> dict:
        now = self.clock()
        expired = self.messages.sweep_all(now)
        cleaned = self.receipts.prune_old(now)
        logger.info(f"Maintenance: {expired} expired messages, {cleaned} old receipts removed")
        return {"cleanedReceipts": cleaned, "expiredMessages": expired}

    def record_request(self) -> None:
        self.counters.requests += 1

    def status(self) -> dict:
        now = self.clock()
        return {
            "status": "Relay Server Running",
            "uptime": (now - self.counters.started_at) / MS_PER_SECOND,
            "timestamp": datetime.fromtimestamp(now / MS_PER_SECOND, tz=timezone.utc).isoformat(),
            "rooms": self.rooms.count(),
            "totalRooms": self.counters.total_rooms,
            "totalMessages": self.counters.total_messages,
            "totalE2EEMessages": self.counters.total_e2ee_messages,
            "storedMessages": self.messages.count() + self.messages.count_directed(),
            "requests": self.counters.requests,
        }
