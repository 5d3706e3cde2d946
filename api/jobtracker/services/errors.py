class RepositoryError(Exception):
    """Base repository error."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


class RepositorySchemaViolationError(RepositoryError):
    """Raised when a payload names a column outside the writable allowlist."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryPersistenceError(RepositoryError):
    """Raised when the database rejects or fails a statement."""


class RepositoryUnavailableError(RepositoryPersistenceError):
    """Raised when the database is unavailable or not configured."""
