"""
OpenRFC - Custom exceptions for error handling.
"""

from typing import Any, Optional


class OpenRFCError(Exception):
    """Base exception for all OpenRFC errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(OpenRFCError):
    """Raised when a required input is missing or structurally invalid."""

    def __init__(self, message: str, errors: Optional[list[Any]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class TextNotFoundError(ValidationError):
    """Raised when quoted or replaced text is not present in an RFC's content."""

    def __init__(self, message: str, rfc_id: Optional[str] = None, text: Optional[str] = None) -> None:
        super().__init__(message)
        self.rfc_id = rfc_id
        self.text = text


class NotFoundError(OpenRFCError):
    """Raised when a referenced entity does not exist."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(OpenRFCError):
    """Raised when an operation is not allowed in the entity's current state."""

    def __init__(self, message: str, current_version: Optional[int] = None) -> None:
        super().__init__(message)
        self.current_version = current_version


class InvalidTransitionError(ConflictError):
    """Raised when an RFC status change is not in the transition table."""

    def __init__(self, from_status: Any, to_status: Any, **kwargs: Any) -> None:
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        super().__init__(
            f"Invalid status transition from {from_value} to {to_value}", **kwargs
        )
        self.from_status = from_status
        self.to_status = to_status


class PermissionDeniedError(OpenRFCError):
    """Raised when the acting agent lacks a required capability."""

    def __init__(
        self,
        message: str,
        agent_id: Optional[str] = None,
        capability: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.agent_id = agent_id
        self.capability = capability
