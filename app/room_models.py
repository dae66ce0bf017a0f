"""
Pydantic response models for the relay API.
"""
from pydantic import BaseModel
from typing import List, Optional


class RoomCreated(BaseModel):
    success: bool = True
    roomId: str
    e2eeEnabled: bool
    timestamp: int


class RoomJoined(BaseModel):
    success: bool = True
    roomId: str
    timestamp: int


class RoomInfo(BaseModel):
    """Room status information."""
    exists: bool
    roomId: str
    e2eeEnabled: Optional[bool] = None
    userCount: int = 0


class RoomUser(BaseModel):
    userId: str
    publicKey: str  # empty until the user publishes one
    joinedAt: int


class RoomUsers(BaseModel):
    users: List[RoomUser]
    totalUsers: int


class Ok(BaseModel):
    ok: bool = True


class PublicKeyInfo(BaseModel):
    publicKey: str
    timestamp: int


class RoomKeyInfo(BaseModel):
    encryptedKey: str
    timestamp: int


class MessageSent(BaseModel):
    success: bool = True
    messageId: str
    timestamp: int


class E2EEMessageSent(MessageSent):
    recipientCount: int


class RoomMessage(BaseModel):
    """Broadcast message in a room."""
    id: str
    roomId: str
    message: str
    senderId: str
    timestamp: int
    expirationTime: Optional[int] = None


class DirectedMessage(BaseModel):
    """One recipient's copy of an encrypted message."""
    id: str
    messageId: str
    senderId: str
    recipientId: str
    encryptedData: str
    timestamp: int
    expirationTime: Optional[int] = None


class Receipt(BaseModel):
    messageId: str
    recipientId: str
    type: str  # e.g. 'delivered', 'read'
    timestamp: int


class Success(BaseModel):
    success: bool = True


class MaintenanceResult(BaseModel):
    success: bool = True
    cleanedReceipts: int
    expiredMessages: int
