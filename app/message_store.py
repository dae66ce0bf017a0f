"""
Message Store - per-room broadcast and directed (per-recipient) streams.

Messages are read non-destructively and only ever removed by the expiry
sweep. The sweep runs on every read, after every write, and periodically
across all rooms from the background cleanup task.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set

from errors import InvalidArgument
from expiry import is_expired, resolve_expiration
from room_manager import RoomLocks, RoomRegistry
from utils.code_generator import ensure_unique_id, generate_id

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """Undirected message, visible to any reader of the room."""
    id: str
    room_id: str
    message: str
    sender_id: str
    timestamp: int
    expiration_time: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "roomId": self.room_id,
            "message": self.message,
            "senderId": self.sender_id,
            "timestamp": self.timestamp,
            "expirationTime": self.expiration_time,
        }


@dataclass
class DirectedMessage:
    """One recipient's copy of an end-to-end encrypted send."""
    id: str
    message_id: str
    sender_id: str
    recipient_id: str
    encrypted_data: str
    timestamp: int
    expiration_time: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "messageId": self.message_id,
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "encryptedData": self.encrypted_data,
            "timestamp": self.timestamp,
            "expirationTime": self.expiration_time,
        }


@dataclass
class RoomStreams:
    broadcast: List[Message] = field(default_factory=list)
    directed: List[DirectedMessage] = field(default_factory=list)
    # message ids currently held, for collision checks
    ids: Set[str] = field(default_factory=set)


def _sweep_stream(records: list, now: int) -> list:
    return [r for r in records if not is_expired(r.expiration_time, now)]


class MessageStore:

    def __init__(self, registry: RoomRegistry, locks: RoomLocks, ttl_ms: Optional[int] = None):
        self.registry = registry
        self.locks = locks
        self.ttl_ms = ttl_ms
        self.streams: Dict[str, RoomStreams] = {}

    def init_room(self, room_id: str) -> None:
        with self.locks.get(room_id):
            self.streams.setdefault(room_id, RoomStreams())

    def _sweep_locked(self, room_id: str, now: int) -> int:
        """Drop expired records from both streams. Caller holds the room lock."""
        streams = self.streams.get(room_id)
        if streams is None:
            return 0
        before = len(streams.broadcast) + len(streams.directed)
        streams.broadcast = _sweep_stream(streams.broadcast, now)
        streams.directed = _sweep_stream(streams.directed, now)
        removed = before - len(streams.broadcast) - len(streams.directed)
        if removed:
            streams.ids = {m.id for m in streams.broadcast} | {m.message_id for m in streams.directed}
            logger.debug(f"Swept {removed} expired messages from room {room_id}")
        return removed

    def send_broadcast(self, room_id: str, sender_id: str, body: str, now: int,
                       explicit_expiry: Optional[int] = None) -> Message:
        self.registry.require(room_id)
        with self.locks.get(room_id):
            streams = self.streams.setdefault(room_id, RoomStreams())
            message = Message(
                id=ensure_unique_id(streams.ids),
                room_id=room_id,
                message=body,
                sender_id=sender_id,
                timestamp=now,
                expiration_time=resolve_expiration(now, explicit_expiry, self.ttl_ms),
            )
            streams.broadcast.append(message)
            streams.ids.add(message.id)
            self._sweep_locked(room_id, now)
        logger.info(f"Broadcast message {message.id} stored in room {room_id}")
        return message

    def send_directed(self, room_id: str, sender_id: str, recipient_payloads: Mapping[str, str],
                      now: int, explicit_expiry: Optional[int] = None) -> List[DirectedMessage]:
        """
        Fan a single logical send out to one stored record per recipient.

        All records share one message_id and one timestamp and are written
        inside one critical section, so readers never see a partial fan-out.
        """
        if not recipient_payloads:
            raise InvalidArgument("recipientPayloads must not be empty")
        self.registry.require(room_id)
        expiration = resolve_expiration(now, explicit_expiry, self.ttl_ms)
        with self.locks.get(room_id):
            streams = self.streams.setdefault(room_id, RoomStreams())
            message_id = ensure_unique_id(streams.ids)
            records = [
                DirectedMessage(
                    id=generate_id(),
                    message_id=message_id,
                    sender_id=sender_id,
                    recipient_id=recipient_id,
                    encrypted_data=payload,
                    timestamp=now,
                    expiration_time=expiration,
                )
                for recipient_id, payload in recipient_payloads.items()
            ]
            streams.directed.extend(records)
            streams.ids.add(message_id)
            self._sweep_locked(room_id, now)
        logger.info(f"Directed message {message_id} fanned out to {len(records)} recipients in room {room_id}")
        return records

    def list_broadcast(self, room_id: str, now: int) -> List[Message]:
        if room_id not in self.streams:
            return []
        with self.locks.get(room_id):
            self._sweep_locked(room_id, now)
            messages = list(self.streams[room_id].broadcast)
        return sorted(messages, key=lambda m: m.timestamp)

    def list_directed(self, room_id: str, recipient_id: str, now: int) -> List[DirectedMessage]:
        if room_id not in self.streams:
            return []
        with self.locks.get(room_id):
            self._sweep_locked(room_id, now)
            messages = [m for m in self.streams[room_id].directed if m.recipient_id == recipient_id]
        return sorted(messages, key=lambda m: m.timestamp)

    def sweep_room(self, room_id: str, now: int) -> int:
        with self.locks.get(room_id):
            return self._sweep_locked(room_id, now)

    def sweep_all(self, now: int) -> int:
        """
        Sweep every room, taking each room's lock in turn rather than
        holding anything across the whole store.
        """
        removed = 0
        for room_id in self.registry.room_ids():
            removed += self.sweep_room(room_id, now)
        if removed:
            logger.info(f"Background sweep removed {removed} expired messages")
        return removed

    def count(self) -> int:
        return sum(len(s.broadcast) for s in list(self.streams.values()))

    def count_directed(self) -> int:
        return sum(len(s.directed) for s in list(self.streams.values()))
