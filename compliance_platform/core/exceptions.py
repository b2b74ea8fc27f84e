"""
Domain exceptions raised by the service layer.

Endpoints translate these into HTTP responses; the global handlers in
main.py catch any that escape.
"""
from fastapi import status


class ComplianceError(Exception):
    """Base class for domain errors with an HTTP status mapping."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplianceError):
    """Malformed or missing input, detected before persistence."""
    status_code = status.HTTP_400_BAD_REQUEST


class AccessDeniedError(ComplianceError):
    """Caller lacks access to the organization or resource."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ComplianceError):
    """Referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ComplianceError):
    """Operation would violate a referential constraint."""
    status_code = status.HTTP_409_CONFLICT


class RiskValidationError(ValidationError):
    pass


class RiskNotFoundError(NotFoundError):
    def __init__(self, risk_id):
        super().__init__(f"Risk with id {risk_id} not found")
        self.risk_id = risk_id
