"""Error taxonomy shared by the services and the HTTP layer."""


class CourseVaultError(Exception):
    """Base class for every error raised by the core."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CourseVaultError, ValueError):
    """Malformed or missing input. Raised before anything is written."""


class IntegrityViolation(CourseVaultError):
    """A precondition or store constraint failed; the transaction is rolled back."""


class NotFoundError(CourseVaultError, LookupError):
    """The requested row does not exist (or is not visible to the caller)."""


class NotAuthorizedError(CourseVaultError):
    """The caller does not own the resource or has not unlocked it."""
