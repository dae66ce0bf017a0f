"""
Cryptographically secure identifier generation for messages.
"""
import secrets

from errors import InternalError


def generate_id() -> str:
    """
    Generate a random 128-bit identifier as 32 hex characters.

    Uses the `secrets` module so ids cannot be predicted by other clients.

    Returns:
        str: An id like "3f9c0a6d5e2b41c8a7d0f6e1b2c39d4a"
    """
    return secrets.token_hex(16)


def ensure_unique_id(existing) -> str:
    """
    Generate an id and verify it is not already in use.

    Args:
        existing: Container supporting `in` with ids already issued

    Returns:
        str: A unique id
    """
    for _ in range(10):  # Max 10 attempts
        candidate = generate_id()
        if candidate not in existing:
            return candidate
    raise InternalError("Failed to generate unique id after 10 attempts")
