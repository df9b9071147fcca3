"""
Domain exceptions shared by the clinical and payments services.

Services raise these; views translate them into HTTP responses with
`domain_error_response` (see apps.core.views).
"""
from typing import Iterable, Optional


class DomainError(Exception):
    """Base class for errors raised by service-layer operations."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_payload(self) -> dict:
        return {'error': self.message}


class DomainValidationError(DomainError):
    """
    Malformed or missing input (bad status, non-numeric cost, empty batch...).

    `valid` lists acceptable values for closed enumerations;
    `fields` names the input fields involved when more than one applies.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        valid: Optional[Iterable[str]] = None,
        fields: Optional[Iterable[str]] = None,
    ):
        super().__init__(message)
        self.valid = list(valid) if valid is not None else None
        self.fields = list(fields) if fields is not None else None

    def as_payload(self) -> dict:
        payload = super().as_payload()
        if self.valid is not None:
            payload['valid'] = self.valid
        if self.fields is not None:
            payload['fields'] = self.fields
        return payload


class NotFoundError(DomainError):
    """Resource missing or not owned by the patient in the request path."""

    status_code = 404


class ForbiddenError(DomainError):
    """Attempt to mutate an immutable (system-generated) event."""

    status_code = 403


class EventLogError(DomainError):
    """Event ledger append failed. Contained by EventLedger.append_best_effort."""

    status_code = 500


class TransactionError(DomainError):
    """Database failure inside a multi-statement operation, raised after rollback."""

    status_code = 500
