"""Custom exceptions for the leadboard application."""


class LeadboardException(Exception):
    """Base exception for leadboard application."""

    code = "leadboard_error"


class ValidationError(LeadboardException):
    """Raised when a value read or written at the store boundary is invalid."""

    code = "validation_error"


class NotFoundError(LeadboardException):
    """Raised when a resource is not found or is owned by another user."""

    code = "not_found"


class PersistenceFailure(LeadboardException):
    """Raised when the backing store rejects a read or write."""

    code = "persistence_failure"


class NoPipelineStage(LeadboardException):
    """Raised when a lead is created before any pipeline stage exists."""

    code = "no_pipeline_stage"


class ConfigurationError(LeadboardException):
    """Raised when configuration is invalid."""

    code = "configuration_error"


class AuthenticationError(LeadboardException):
    """Raised when authentication fails."""

    code = "authentication_error"


class AuthenticationRequired(AuthenticationError):
    """Raised when an operation needs a user and none is signed in."""

    code = "authentication_required"
