"""Centralized exception definitions for anyfs."""


class FSError(Exception):
    """Base exception for all anyfs errors."""


class InvalidArgumentError(FSError):
    """A required argument was missing or empty."""


class InvalidURIError(InvalidArgumentError):
    """The URI string could not be parsed."""


# Configuration Exceptions


class ConfigError(FSError):
    """Base exception for configuration errors."""


class ValidationError(ConfigError):
    """Exception raised when configuration validation fails."""


# Connection Exceptions


class FSConnectionError(FSError):
    """Failed to connect to the storage backend."""


class AuthenticationError(FSConnectionError):
    """Authentication failed."""


class MissingDependencyError(FSError):
    """Raised when required dependencies are not installed."""


# Operation Exceptions


class DirectoryNotFoundError(FSError):
    """Base or target directory does not exist on the backend."""


class NotFoundError(FSError):
    """Remote file not found."""


class TransferError(FSError):
    """Backend I/O failed while listing, streaming, renaming or deleting."""
