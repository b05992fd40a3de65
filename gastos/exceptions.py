"""Domain-specific exceptions for the expense log."""

class ValidationError(ValueError):
    """Raised when a submitted expense does not meet the required-field rules."""


class PersistenceError(IOError):
    """Base class for failures talking to the key-value collaborator."""


class PersistenceReadError(PersistenceError):
    """Raised when the stored blob cannot be read or decoded."""


class PersistenceWriteError(PersistenceError):
    """Raised when the record list cannot be written back."""
