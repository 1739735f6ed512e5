"""Error taxonomy shared by services and HTTP handlers.

Services raise these exceptions; the application maps each one to a JSON
error body using the `status_code` carried by the class. Store failures
never leak driver messages to clients: the detail is logged server-side
and callers only see the sanitized message.
"""


class RecordsError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RecordsError, ValueError):
    """Bad input shape or a business-rule violation (capacity, duplicates)."""
    status_code = 400


class NotFoundError(RecordsError):
    """The requested student or entity does not exist."""
    status_code = 404


class AuthError(RecordsError):
    """Bad credentials. The message is deliberately generic."""
    status_code = 401

    def __init__(self, message: str = "invalid credentials"):
        super().__init__(message)


class StoreError(RecordsError):
    """Connectivity or query failure in the relational store."""
    status_code = 500

    def __init__(self, message: str = "database error"):
        super().__init__(message)
