"""Custom exceptions for the Soucey ordering API."""
from __future__ import annotations


class SouceyException(Exception):
    """Base exception for all Soucey errors."""

    status_code = 500

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationException(SouceyException):
    """Missing or malformed input. Nothing is written."""

    status_code = 400


class NotAuthenticatedException(SouceyException):
    """No caller identity on a request that needs one."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class PaymentException(SouceyException):
    """The payment collaborator reported a failed charge."""

    status_code = 402


class NotAuthorizedException(SouceyException):
    """Caller is known but does not own the resource."""

    status_code = 403


class NotFoundException(SouceyException):
    """Document not found."""

    status_code = 404

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection.capitalize()} not found")
        self.collection = collection
        self.doc_id = doc_id


class CartConflictException(SouceyException):
    """Item belongs to another restaurant and replacing the cart was not confirmed."""

    status_code = 409


class PersistenceException(SouceyException):
    """A write to the database failed."""

    status_code = 500


class DatabaseUnavailable(PersistenceException):
    """DATABASE_URL / DATABASE_NAME not configured."""

    status_code = 503
