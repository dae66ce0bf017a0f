"""
Error taxonomy for relay operations.

Stores raise these; the HTTP layer maps them to responses in one place.
"""


class RelayError(Exception):
    """Base class for expected relay failures."""
    status_code = 500
    kind = "internal"
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(RelayError):
    status_code = 400
    kind = "invalid_argument"
    default_message = "Missing required fields"


class RoomNotFound(RelayError):
    status_code = 404
    kind = "room_not_found"
    default_message = "Room not found"

    def __init__(self, room_id: str = None):
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}" if room_id else None)


class NotFound(RelayError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class Conflict(RelayError):
    status_code = 409
    kind = "conflict"
    default_message = "Key already exists"


class InternalError(RelayError):
    pass
