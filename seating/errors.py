from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    INVALID_CONFIG = "INVALID_CONFIG"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


# http status used by the api layer for each kind
STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_CONFIG: 422,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class SeatingError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "context": self.context}


class SeatValidationError(SeatingError):
    kind = ErrorKind.VALIDATION


class InvalidConfigError(SeatingError):
    kind = ErrorKind.INVALID_CONFIG


class SeatConflictError(SeatingError):
    kind = ErrorKind.CONFLICT


class NotFoundError(SeatingError):
    kind = ErrorKind.NOT_FOUND


class StorageError(SeatingError):
    kind = ErrorKind.INTERNAL
