"""Custom exceptions for cluster lifecycle management."""


class ClusterLifecycleError(Exception):
    """Base exception for all cluster lifecycle errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class StoreError(ClusterLifecycleError):
    """Exception raised when the datastore rejects an operation."""

    def __init__(self, message: str, details: str = None, original: Exception = None):
        self.original = original
        super().__init__(message, details)


class ConflictError(StoreError):
    """Exception raised when a write violates a uniqueness constraint."""

    pass


class HostAssignmentError(ConflictError):
    """Exception raised when a host is already owned by another cluster."""

    pass


class NotFoundError(ClusterLifecycleError):
    """Exception raised when a requested record does not exist."""

    pass


class RollbackError(StoreError):
    """Exception raised when rolling back a failed transaction also fails.

    ``original`` holds the error that triggered the rollback and
    ``rollback_error`` the error raised by the rollback itself.
    """

    def __init__(self, message: str, original: Exception, rollback_error: Exception):
        self.rollback_error = rollback_error
        super().__init__(
            message,
            details=f"Original error: {original}; rollback error: {rollback_error}",
            original=original,
        )


class ValidationError(ClusterLifecycleError):
    """Exception raised for validation errors."""

    pass


class ConfigurationError(ClusterLifecycleError):
    """Exception raised for configuration errors."""

    pass


class InventoryError(ClusterLifecycleError):
    """Exception raised when an inventory cannot be rendered or written."""

    pass
