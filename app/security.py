"""
Security utilities for the relay.
Identifier normalization, input validation, and security event logging.

Payload fields are opaque ciphertext: they are size-checked but never
escaped or otherwise rewritten.
"""
import logging
from typing import Optional

import config
from errors import InvalidArgument

security_logger = logging.getLogger('security')


def normalize_room_id(room_id: Optional[str]) -> str:
    """
    Canonical form of a room identifier: trimmed and uppercased, so that
    "abc" and "ABC " address the same room.

    Raises:
        InvalidArgument: if the identifier is missing, blank, or too long
    """
    return validate_identifier(room_id, "roomId").upper()


def validate_identifier(value: Optional[str], field_name: str,
                        max_length: Optional[int] = None) -> str:
    """
    Validate a caller-supplied identifier and return it trimmed.

    Raises:
        InvalidArgument: if missing, blank, contains null bytes, or too long
    """
    if max_length is None:
        max_length = config.MAX_IDENTIFIER_LENGTH
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"Missing {field_name}")
    value = value.strip()
    if '\x00' in value:
        log_security_event("null_byte_identifier", {"field": field_name})
        raise InvalidArgument(f"Invalid {field_name}")
    if len(value) > max_length:
        raise InvalidArgument(f"{field_name} too long (max {max_length})")
    return value


def validate_payload(value: Optional[str], field_name: str) -> str:
    """
    Check an opaque blob is present and within the size limit.
    The value is returned untouched.
    """
    if value is None or not isinstance(value, str) or value == "":
        raise InvalidArgument(f"Missing {field_name}")
    if len(value.encode("utf-8")) > config.MAX_PAYLOAD_BYTES:
        log_security_event("oversized_payload", {"field": field_name, "size": len(value)})
        raise InvalidArgument(f"{field_name} too large (max {config.MAX_PAYLOAD_BYTES} bytes)")
    return value


def log_security_event(event_type: str, details: dict):
    """Log a security-relevant event."""
    security_logger.warning(f"SECURITY_EVENT: {event_type} - {details}")
