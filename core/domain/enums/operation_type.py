"""
Operation and channel tags.

Closed enumerations at the boundary; the engine only routes on them.
"""
from enum import Enum


class ChannelKind(str, Enum):
    """Delivery target of a single channel sub-task."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    PDF = "pdf"


class OperationType(str, Enum):
    """Kind of work an operation represents."""

    SEND_EMAIL = "send_email"
    GENERATE_PDF = "generate_pdf"
    SEND_NOTIFICATION = "send_notification"

    @property
    def default_channel(self) -> ChannelKind:
        """Channel used when a request names no targets."""
        return _DEFAULT_CHANNELS[self]


_DEFAULT_CHANNELS = {
    OperationType.SEND_EMAIL: ChannelKind.EMAIL,
    OperationType.GENERATE_PDF: ChannelKind.PDF,
    OperationType.SEND_NOTIFICATION: ChannelKind.EMAIL,
}
