"""Typed failures surfaced to the message router as error envelopes."""


class GameError(Exception):
    """Base for failures that are reported to the client verbatim."""
    code = "500"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(GameError):
    code = "400"


class ParseError(GameError):
    code = "400"


class UnknownMessageType(GameError):
    code = "400"

    def __init__(self, msg_type):
        super().__init__(f"Unknown message type: {msg_type}")
        self.msg_type = msg_type


class NotFoundError(GameError):
    code = "404"


class SessionNotFound(NotFoundError):
    pass


class QuestionNotFound(NotFoundError):
    pass


class ConnectionNotFound(NotFoundError):
    pass


class StorageError(GameError):
    code = "500"


class DatabaseError(StorageError):
    pass


class StoreConnectionError(StorageError):
    """The backing store could not be reached."""
    pass


class SessionConflict(GameError):
    """Another write landed between our read and our compare-and-set."""
    code = "409"


class RecipientGone(Exception):
    """Delivery outcome: the addressed connection no longer exists.

    Raised only by transports and consumed only by the broadcaster; it is
    an expected outcome rather than a failure, so it is not a GameError.
    """

    def __init__(self, connection_id: str):
        super().__init__(f"Connection is gone: {connection_id}")
        self.connection_id = connection_id
