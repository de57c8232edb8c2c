from __future__ import annotations


class RoomError(Exception):
    """Base for every caller-visible failure of a room operation.

    ``status`` mirrors the HTTP status the transport layer should answer with.
    """

    status = 400

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ValidationError(RoomError):
    status = 400


class ForbiddenError(RoomError):
    status = 403


class NotFoundError(RoomError):
    status = 404


class ConflictError(RoomError):
    status = 409


class UnprocessableError(RoomError):
    status = 422


class InternalError(RoomError):
    status = 500
