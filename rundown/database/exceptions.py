"""Custom exceptions for database operations."""


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Database is not configured or cannot be reached."""
    pass


class DatabaseConstraintError(DatabaseError):
    """Unique or foreign key constraint violated (duplicate link, unknown user, ...)."""
    pass


class DatabaseOperationError(DatabaseError):
    """A query or write failed for any other reason."""
    pass


class EntityNotFoundError(DatabaseError):
    """Requested row does not exist."""
    pass
