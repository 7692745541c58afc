# backend/mailsift/errors.py
"""
Domain errors raised by the services.

Each error carries the HTTP status and machine-readable code the API
renders for it (see ``main.py``), so services never import FastAPI.
"""


class MailsiftError(Exception):
    status_code = 500
    error = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedInput(MailsiftError):
    status_code = 400
    error = "malformed_input"


class ColumnNotFound(MailsiftError):
    status_code = 422
    error = "column_not_found"


class NotFound(MailsiftError):
    status_code = 404
    error = "not_found"


class InvalidStateTransition(MailsiftError):
    status_code = 409
    error = "invalid_state"


class AlreadyProcessing(InvalidStateTransition):
    error = "already_processing"


class AlreadyCompleted(InvalidStateTransition):
    error = "already_completed"


class UnrecoverableState(InvalidStateTransition):
    error = "unrecoverable_state"


class NoRecords(MailsiftError):
    status_code = 409
    error = "no_records"


class VerifierError(MailsiftError):
    status_code = 502
    error = "verifier_error"
