"""
Custom exceptions for xcodecache.

This module defines domain-specific exceptions that separate fatal run
errors (configuration, credentials, catalog) from the per-item transfer
failures that are reported as plain boolean outcomes.
"""


class XcodeCacheError(Exception):
    """
    Base exception for all xcodecache errors.

    All custom exceptions in xcodecache inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(XcodeCacheError):
    """
    Exception raised when the run cannot be configured.

    This includes:
    - Missing or invalid account credentials
    - Invalid configuration values
    - No usable transfer binary on the host
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a configuration value fails validation."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        value: object = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the validation exception.

        Args:
            message: The primary error message.
            key: The configuration key that failed validation.
            value: The offending value.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.key = key
        self.value = value


class MissingCredentialsError(ConfigurationError):
    """Exception raised when the account credentials are not set."""

    pass


class InvalidCredentialsError(ConfigurationError):
    """Exception raised when the portal rejects the account credentials."""

    pass


class TransportUnavailableError(ConfigurationError):
    """Exception raised when no suitable transfer binary is installed."""

    pass


# =============================================================================
# Upstream Errors
# =============================================================================


class APIError(XcodeCacheError):
    """
    Exception raised when a developer portal request fails.

    Attributes:
        endpoint: The URL that was requested.
        status_code: The HTTP status code returned, if any.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the API exception.

        Args:
            message: The primary error message.
            endpoint: The URL that was accessed.
            status_code: The HTTP status code returned.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class CatalogError(XcodeCacheError):
    """
    Exception raised when the catalog reports a failure result code.

    There is nothing meaningful to select from a failed catalog, so this
    error always ends the run.
    """

    def __init__(
        self,
        message: str,
        result_code: object = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.result_code = result_code
