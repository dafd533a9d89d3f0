"""Domain errors raised by the service layer.

Each error kind is an HTTPException carrying its own status code, so services
raise them directly and FastAPI turns them into responses. The ``error`` code
is stable and is rendered alongside ``detail`` by the handler in main.py.
"""

from typing import Optional

from fastapi import HTTPException


class DomainError(HTTPException):
    """Base class for service-layer errors"""

    status_code = 400
    error = "domain_error"
    default_detail = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFound(DomainError):
    status_code = 404
    error = "not_found"
    default_detail = "Resource not found"


class InvalidState(DomainError):
    status_code = 409
    error = "invalid_state"
    default_detail = "Operation not allowed in the current state"


class InvalidReviewer(DomainError):
    status_code = 400
    error = "invalid_reviewer"
    default_detail = "Invalid or inactive reviewer"


class NotAssigned(DomainError):
    status_code = 403
    error = "not_assigned"
    default_detail = "Reviewer is not assigned to this order"


class AlreadyComplete(DomainError):
    status_code = 409
    error = "already_complete"
    default_detail = "Review is already completed"


class AlreadyCompleted(DomainError):
    status_code = 409
    error = "already_completed"
    default_detail = "Payment is already completed"


class InvalidAmount(DomainError):
    error = "invalid_amount"
    default_detail = "Invalid amount"


class InvalidFile(DomainError):
    error = "invalid_file"
    default_detail = "Invalid file"


class InvalidDate(DomainError):
    error = "invalid_date"
    default_detail = "Invalid date"


class InvalidInput(DomainError):
    error = "invalid_input"
    default_detail = "Invalid input"


class SlotTaken(DomainError):
    status_code = 409
    error = "slot_taken"
    default_detail = "Time slot not available"


class Forbidden(DomainError):
    status_code = 403
    error = "forbidden"
    default_detail = "Not allowed to access this resource"


class Conflict(DomainError):
    status_code = 409
    error = "conflict"
    default_detail = "Request conflicts with the current resource"
