"""
Pydantic models for request validation.

Field names follow the wire format used by existing clients (camelCase).
Presence of a field is checked here; emptiness and size limits are checked
by the relay service.
"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Dict, Optional


class CreateRoomRequest(BaseModel):
    """Create or re-create a room."""
    roomId: str
    hostId: str
    e2eeEnabled: bool = False


class JoinRoomRequest(BaseModel):
    roomId: str
    userId: str


class PublicKeyRequest(BaseModel):
    """Older clients send `pubKey`."""
    publicKey: str = Field(validation_alias=AliasChoices("publicKey", "pubKey"))


class RoomKeyRequest(BaseModel):
    encryptedKey: str


class SendMessageRequest(BaseModel):
    """Broadcast message. Client-supplied timestamps are ignored."""
    roomId: str
    message: str
    senderId: str
    expirationTime: Optional[int] = None


class SendE2EERequest(BaseModel):
    """One opaque ciphertext per recipient."""
    roomId: str
    senderId: str
    recipientPayloads: Dict[str, str]
    expirationTime: Optional[int] = None


class ReceiptRequest(BaseModel):
    roomId: str
    messageId: str
    recipientId: str
    type: str
