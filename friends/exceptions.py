from rest_framework import status
from rest_framework.exceptions import APIException


class RelationshipError(APIException):
    """
    Base class for every failure raised by the relationship manager.
    Each subclass maps to one HTTP status so the exception handler can
    render it without knowing about friendships.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid relationship operation."
    default_code = 'relationship_error'


class NotFound(RelationshipError):
    """A user or a pending request does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = 'not_found'


class InvalidOperation(RelationshipError):
    """The operation can never succeed for these arguments (e.g. self request)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid operation."
    default_code = 'invalid_operation'


class Conflict(RelationshipError):
    """The transition contradicts the pair's current state."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The relationship is already in a conflicting state."
    default_code = 'conflict'


class InvalidState(RelationshipError):
    """The request exists in some form but is no longer pending."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Only pending requests can be changed."
    default_code = 'invalid_state'


class StorageUnavailable(RelationshipError):
    """The backing store failed; the operation was rolled back."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Relationship storage is unavailable."
    default_code = 'storage_unavailable'
