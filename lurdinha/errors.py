# lurdinha/errors.py
"""
Domain errors.

Raised by the store and the lifecycle functions, converted to
OutError events by the handlers. `code` is what clients switch on.
"""
from __future__ import annotations


class LurdinhaError(Exception):
    code = "ERROR"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---- Store ----

class NotFound(LurdinhaError):
    code = "ROOM_NOT_FOUND"
    default_message = "Sala não encontrada."

    def __init__(self, room_id: str | None = None, message: str | None = None):
        self.room_id = room_id
        super().__init__(message or (f"Room {room_id} not found" if room_id else None))


class AlreadyExists(LurdinhaError):
    code = "ROOM_EXISTS"
    default_message = "Room code already taken"

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} already exists")


class Persistence(LurdinhaError):
    """Any transport/store failure."""
    code = "PERSISTENCE"
    default_message = "Erro de conexão com a sala."


class Conflict(LurdinhaError):
    """Precondition on the stored document did not hold; nothing was written."""
    code = "CONFLICT"
    default_message = "Room changed before the update could be applied"


# ---- Lifecycle ----

class AlreadyStarted(LurdinhaError):
    code = "ALREADY_STARTED"
    default_message = "A partida já começou."


class AuthRequired(LurdinhaError):
    code = "AUTH_REQUIRED"
    default_message = "Login required"


class InvalidState(LurdinhaError):
    code = "BAD_STATE"
    default_message = "Action not allowed in the current room state"


class InvalidAnswer(LurdinhaError):
    code = "INVALID_ANSWER"
    default_message = "Answer must not be empty"


class NotHost(LurdinhaError):
    code = "NOT_HOST"
    default_message = "Only the host can do this"


class NotMember(LurdinhaError):
    code = "NOT_MEMBER"
    default_message = "Você não está nesta sala."
