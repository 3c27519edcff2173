"""Errors raised by the rotation engine, the registry and the stores.

Every error carries the HTTP status the API layer answers with, so routes
never need a per-error mapping table.
"""


class TurnWorkError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(TurnWorkError):
    """Input rejected before anything was mutated."""


class InvalidCycleLength(ValidationFailure):
    pass


class PatternLengthMismatch(ValidationFailure):
    pass


class PatternIndexOutOfRange(ValidationFailure):
    pass


class DuplicateCycleName(ValidationFailure):
    status_code = 409


class EmptyNameError(ValidationFailure):
    pass


class InvalidOverride(ValidationFailure):
    pass


class InvalidTime(ValidationFailure):
    pass


class InvalidAlarm(ValidationFailure):
    pass


class CycleInUseError(TurnWorkError):
    status_code = 409


class ShiftTypeInUseError(TurnWorkError):
    status_code = 409


class NotFoundError(TurnWorkError):
    status_code = 404


class CycleNotFound(NotFoundError):
    pass


class ShiftTypeNotFound(NotFoundError):
    pass


class AlarmNotFound(NotFoundError):
    pass


class EventNotFound(NotFoundError):
    pass


class PersistenceError(TurnWorkError):
    status_code = 503
