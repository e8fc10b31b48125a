"""
Typed errors raised by the discovery engine
"""
from typing import Any, Dict, Optional

# Filter
ERROR_FILTER_INVALID_RANGE = "error.filter.invalid-range"
ERROR_FILTER_NEGATIVE_VALUE = "error.filter.negative-value"
ERROR_FILTER_UNKNOWN_VALUE = "error.filter.unknown-value"
ERROR_REQUEST_MALFORMED = "error.request.malformed"

# Requester
ERROR_REQUESTER_PROFILE_MISSING = "error.requester.profile-missing"
ERROR_REQUESTER_PREFERENCE_MISSING = "error.requester.preference-missing"

# Auth
ERROR_AUTH_MISSING_TOKEN = "error.auth.missing-token"
ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN = "error.auth.invalid-or-expired-token"
ERROR_AUTH_SUBJECT_MISSING = "error.auth.subject-missing"
ERROR_AUTH_SUBJECT_MISMATCH = "error.auth.subject-mismatch"


class DiscoveryError(Exception):
    """Base error: a kind (error code), the offending field and extra context"""

    def __init__(
        self,
        kind: str,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.field = field
        self.message = message or kind
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.kind,
            "message": self.message,
            "field": self.field,
            "details": self.context,
        }


class InvalidFilterError(DiscoveryError):
    """Filter values that are malformed or contradict each other"""


class MissingRequesterError(DiscoveryError):
    """The requester has no resolved profile or preference"""


class AuthError(DiscoveryError):
    """Bearer token is missing, malformed, expired or carries no subject"""


class ForbiddenError(DiscoveryError):
    """Authenticated caller writing another member's records"""
