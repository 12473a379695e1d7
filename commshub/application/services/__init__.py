"""Service orchestrators."""

from .message_service import (
    DeletedMessage,
    EditedMessage,
    MessageService,
    PersistedMessage,
    ReadReceiptRecord,
    ThreadStatusChange,
)

__all__ = [
    "DeletedMessage",
    "EditedMessage",
    "MessageService",
    "PersistedMessage",
    "ReadReceiptRecord",
    "ThreadStatusChange",
]
