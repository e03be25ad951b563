"""Failure kinds raised by the ledger and reporting services.

They subclass DRF's ``APIException`` so API views render them with the
right status code; services raise them directly and never return partial
results.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class LedgerError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Gate pass operation failed."
    default_code = "ledger_error"


class NotFound(LedgerError):
    """Season/society/entry missing or owned by another rice mill."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class Conflict(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting record already exists."
    default_code = "conflict"


class ValidationFailed(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "invalid"


class BusinessRuleViolation(LedgerError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Operation not allowed."
    default_code = "business_rule"


class QueryTimeout(LedgerError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = "The store did not answer before the deadline."
    default_code = "timeout"
