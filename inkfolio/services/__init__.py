"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Referenced user or tattoo does not exist (-> HTTP 404)."""


class OwnershipMismatchError(ServiceError):
    """Caller is not the authoritative owner of the tattoo (-> HTTP 403)."""


class ValidationError(ServiceError):
    """Missing or malformed required fields (-> HTTP 400)."""


class ConflictError(ServiceError):
    """Business rule conflict, e.g. duplicate username (-> HTTP 409)."""


class AuthenticationError(ServiceError):
    """Credential or token verification failed (-> HTTP 401)."""


class PersistenceError(ServiceError):
    """Underlying store I/O failed (-> HTTP 503)."""


class PartialConsistencyError(PersistenceError):
    """A multi-step operation wrote to one store and then failed on the next.

    The stores now disagree until a reconciliation sweep repairs them.
    ``completed`` names the write that did land, ``failed`` the one that
    did not.
    """

    def __init__(self, message: str, *, completed: str, failed: str) -> None:
        super().__init__(message)
        self.completed = completed
        self.failed = failed


class ConstraintViolationError(PersistenceError):
    """Write rejected by a uniqueness or not-null constraint."""
