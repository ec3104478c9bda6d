"""Result types and exceptions for the notification components."""

from dataclasses import dataclass


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when an ops alert template cannot be rendered."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised by SMTPClient when a message cannot be delivered."""

    pass


@dataclass(frozen=True)
class SendResult:
    """Outcome of one send or persistence step.

    Attributes:
        success: Whether the step succeeded
        message: Human-readable description, shown in status lines
    """

    success: bool
    message: str

    @classmethod
    def ok(cls, message: str) -> "SendResult":
        return cls(True, message)

    @classmethod
    def failed(cls, message: str) -> "SendResult":
        return cls(False, message)
