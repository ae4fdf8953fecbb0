from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    SEQUENCE = "sequence"
    LOCKED_STATE = "locked_state"
    NOT_FOUND = "not_found"


class SchedulerError(Exception):
    """
    Base error for every scheduling operation.

    Carries a kind from ErrorKind and a context dict (ids, offending field)
    so the caller can render a message without parsing strings.
    """
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            'error': self.message,
            'kind': self.kind.value,
            'context': self.context,
        }


class ValidationError(SchedulerError):
    kind = ErrorKind.VALIDATION


class SequenceError(SchedulerError):
    kind = ErrorKind.SEQUENCE


class LockedStateError(SchedulerError):
    kind = ErrorKind.LOCKED_STATE


class NotFoundError(SchedulerError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: Optional[str], message: str = None):
        super().__init__(
            message or f"{entity.capitalize()} {entity_id} not found",
            entity=entity,
            entity_id=entity_id,
        )


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.SEQUENCE: 409,
    ErrorKind.LOCKED_STATE: 423,
    ErrorKind.NOT_FOUND: 404,
}
