"""
Domain exceptions for scheduled content management.

Each exception carries the HTTP status and machine-readable code it is
rendered with at the request boundary (see ``app.responses``).

Hierarchy:
    ReviewDeskError
    +-- ValidationError         400  user-correctable input problems
    +-- AuthorizationError      401  tenant missing or not resolvable
    +-- NotFoundError           404  unknown id for this tenant
    +-- InvalidStateError       409  mutation of a non-scheduled item
    +-- ExternalServiceError    502  Google / AI collaborator failures
"""
from typing import Any, Dict, List, Optional


class ReviewDeskError(Exception):
    """Base exception for all domain errors."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        return None


class ValidationError(ReviewDeskError):
    """Raised when submitted content fails validation.

    Attributes:
        errors: One entry per problem, each with ``field`` and ``message`` and,
            for batch items, ``index`` (0-based) and ``position`` (1-based).
    """

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)

    @property
    def positions(self) -> List[int]:
        return sorted({e["position"] for e in self.errors if "position" in e})

    @property
    def details(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class AuthorizationError(ReviewDeskError):
    """Raised when the tenant cannot be resolved from the session."""

    status_code = 401
    error_code = "UNAUTHORIZED"


class NotFoundError(ReviewDeskError):
    """Raised when an item does not exist for the requesting tenant."""

    status_code = 404
    error_code = "NOT_FOUND"


class InvalidStateError(ReviewDeskError):
    """Raised when an item is not in a state that allows the operation.

    Attributes:
        item_id: Identifier of the item.
        status: The status the item was found in.
    """

    status_code = 409
    error_code = "INVALID_STATE"

    def __init__(self, message: str, item_id: Optional[int] = None, status: Optional[str] = None):
        self.item_id = item_id
        self.status = status
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {"id": self.item_id, "status": self.status}


class ExternalServiceError(ReviewDeskError):
    """Raised when a collaborator (Google Business Profile, OAuth, AI) fails.

    Attributes:
        service: Name of the collaborator.
        upstream_status: HTTP status returned upstream, if any.
        reason: Upstream reason code such as ``QUESTION_TEXT_TOO_SHORT``.
        retryable: True for network errors, rate limiting and 5xx responses.
    """

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        service: str,
        upstream_status: Optional[int] = None,
        reason: Optional[str] = None,
        retryable: bool = False,
        status_code: Optional[int] = None,
    ):
        self.service = service
        self.upstream_status = upstream_status
        self.reason = reason
        self.retryable = retryable
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "upstream_status": self.upstream_status,
            "reason": self.reason,
            "retryable": self.retryable,
        }
