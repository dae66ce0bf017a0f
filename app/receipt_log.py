"""
Receipt Log - append-only delivery/read receipts per room.

Two horizons: receipts are visible for a rolling window (24h by default)
but only physically removed by the explicit prune (7 days by default).
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import config
from expiry import MS_PER_SECOND
from room_manager import RoomLocks, RoomRegistry

logger = logging.getLogger(__name__)


@dataclass
class Receipt:
    message_id: str
    recipient_id: str
    type: str
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "messageId": self.message_id,
            "recipientId": self.recipient_id,
            "type": self.type,
            "timestamp": self.timestamp,
        }


class ReceiptLog:

    def __init__(self, registry: RoomRegistry, locks: RoomLocks,
                 visibility_ms: Optional[int] = None, retention_ms: Optional[int] = None):
        self.registry = registry
        self.locks = locks
        if visibility_ms is None:
            visibility_ms = config.RECEIPT_VISIBILITY_SECONDS * MS_PER_SECOND
        if retention_ms is None:
            retention_ms = config.RECEIPT_RETENTION_SECONDS * MS_PER_SECOND
        self.visibility_ms = visibility_ms
        self.retention_ms = retention_ms
        self.receipts: Dict[str, List[Receipt]] = {}

    def init_room(self, room_id: str) -> None:
        with self.locks.get(room_id):
            self.receipts.setdefault(room_id, [])

    def append_receipt(self, room_id: str, message_id: str, recipient_id: str,
                       receipt_type: str, now: int) -> Receipt:
        self.registry.require(room_id)
        receipt = Receipt(message_id=message_id, recipient_id=recipient_id,
                          type=receipt_type, timestamp=now)
        with self.locks.get(room_id):
            self.receipts.setdefault(room_id, []).append(receipt)
        logger.debug(f"Receipt {receipt_type} for {message_id} from {recipient_id} in room {room_id}")
        return receipt

    def list_receipts(self, room_id: str, now: int) -> List[Receipt]:
        """Receipts inside the visibility window. Never mutates the log."""
        if room_id not in self.receipts:
            return []
        cutoff = now - self.visibility_ms
        with self.locks.get(room_id):
            visible = [r for r in self.receipts.get(room_id, []) if r.timestamp > cutoff]
        return sorted(visible, key=lambda r: r.timestamp)

    def _prune_room(self, room_id: str, cutoff: int) -> int:
        with self.locks.get(room_id):
            entries = self.receipts.get(room_id)
            if not entries:
                return 0
            kept = [r for r in entries if r.timestamp >= cutoff]
            self.receipts[room_id] = kept
            return len(entries) - len(kept)

    def prune_old(self, now: int, room_id: Optional[str] = None) -> int:
        """
        Delete receipts older than the retention horizon, for one room or
        for all rooms. Returns the number removed.
        """
        cutoff = now - self.retention_ms
        room_ids = [room_id] if room_id is not None else list(self.receipts.keys())
        removed = sum(self._prune_room(rid, cutoff) for rid in room_ids)
        if removed:
            logger.info(f"Pruned {removed} receipts older than {self.retention_ms // MS_PER_SECOND}s")
        return removed

    def count(self) -> int:
        return sum(len(entries) for entries in list(self.receipts.values()))
