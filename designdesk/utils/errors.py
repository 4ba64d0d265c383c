"""Error handling utilities."""

from typing import Any, Optional


class DesignDeskError(Exception):
    """Base exception for the DesignDesk core."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Serialize error for API responses."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(DesignDeskError):
    """Referenced task, delivery or user does not exist."""
    pass


class IllegalTransitionError(DesignDeskError):
    """Requested status change is not allowed from the current state."""

    def __init__(
        self,
        reason: str,
        current_status: Optional[str] = None,
        event: Optional[str] = None,
        **details: Any
    ):
        message = reason
        if current_status and event:
            message = f"Cannot {event} task in status {current_status}: {reason}"
        super().__init__(message, current_status=current_status, event=event, **details)
        self.reason = reason
        self.current_status = current_status
        self.event = event


class InputValidationError(DesignDeskError):
    """Action input failed validation before reaching the store."""
    pass


class StoreError(DesignDeskError):
    """Supabase table or storage operation error."""
    pass
