"""
Message persistence bridge.

Makes socket events durable before they are relayed: message creation with
thread metadata, read receipts, edits, soft deletes and thread status
changes. Every operation runs in one transaction on the injected session
and either commits completely or rolls back and raises.

The service never decides presence or routing; the relay server calls it
and relays only what it returns.

Dependencies: sqlalchemy, commshub.boundary.db
System role: Persistence use case orchestration for the realtime layer
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commshub.boundary.db.base import ensure_utc, utc_now
from commshub.boundary.db.CRUD.message_crud import message_crud, read_receipt_crud
from commshub.boundary.db.CRUD.thread_crud import ThreadActivity, thread_crud
from commshub.boundary.db.CRUD.user_crud import user_crud
from commshub.boundary.db.models.message_model import MessageModel, MessageType
from commshub.boundary.db.models.thread_model import ThreadStatus
from commshub.core.exceptions import (
    CommsException,
    EditWindowExpiredError,
    MessageNotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ThreadNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

EDIT_WINDOW = timedelta(minutes=5)

STATUS_SYSTEM_MESSAGES = {
    ThreadStatus.OPEN: "Thread reopened",
    ThreadStatus.RESOLVED: "Thread marked as resolved",
    ThreadStatus.ARCHIVED: "Thread archived",
}


@dataclass(frozen=True)
class PersistedMessage:
    """A stored message plus the thread metadata it produced."""

    id: str
    thread_id: str
    author_id: str
    author_name: str | None
    author_role: str | None
    content: str
    created_at: datetime
    reply_to_id: str | None
    attachments: list[dict[str, Any]] = field(default_factory=list)
    thread: ThreadActivity | None = None


@dataclass(frozen=True)
class ReadReceiptRecord:
    message_id: str
    thread_id: str
    user_id: str
    read_at: datetime


@dataclass(frozen=True)
class EditedMessage:
    id: str
    thread_id: str
    content: str
    edited_at: datetime


@dataclass(frozen=True)
class DeletedMessage:
    id: str
    thread_id: str


@dataclass(frozen=True)
class ThreadStatusChange:
    thread_id: str
    status: ThreadStatus
    user_id: str
    system_message_id: str


class MessageService:
    """Persistence bridge used by the relay server for write events."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize message service with async database session.

        Args:
            db: Async SQLAlchemy session (one per socket event)
            clock: Source of the current UTC time
        """
        self.db = db
        self.clock = clock

    async def persist_message(
        self,
        thread_id: str,
        author_id: str,
        content: str,
        reply_to_id: str | None = None,
        attachments: list[dict[str, Any]] | None = None,
        author_name: str | None = None,
    ) -> PersistedMessage:
        """
        Store a new message and touch its thread.

        Flow:
        1. Update thread last_message_at / last_message_by_id / message_count
           (a missing thread stops here, before the message foreign key is hit)
        2. Insert the message row with the same timestamp
        3. Look up author metadata
        4. Commit (nothing is visible unless every step succeeded)

        Args:
            thread_id: Target thread
            author_id: Sending user
            content: Message body
            reply_to_id: Parent message for replies
            attachments: Attachment descriptors (stored as JSON)
            author_name: Fallback display name when the user row is missing

        Returns:
            PersistedMessage: Stored message with generated id and timestamp

        Raises:
            ThreadNotFoundError: If the thread does not exist
            PersistenceError: If the store fails
        """
        created_at = self.clock()
        async with self._transaction("create_message", thread_id=thread_id):
            activity = await thread_crud.record_message(
                self.db,
                thread_id,
                author_id=author_id,
                at=created_at,
            )
            if activity is None:
                raise ThreadNotFoundError(thread_id)

            message = await message_crud.create(
                self.db,
                thread_id=thread_id,
                author_id=author_id,
                content=content,
                type=MessageType.TEXT,
                parent_message_id=reply_to_id,
                attachments=list(attachments or []),
                created_at=created_at,
            )

            author = await user_crud.get_by_id(self.db, author_id)

        logger.info(
            "Message persisted",
            extra={
                "thread_id": thread_id,
                "message_id": message.id,
                "author_id": author_id,
                "message_count": activity.message_count,
            },
        )
        return PersistedMessage(
            id=message.id,
            thread_id=thread_id,
            author_id=author_id,
            author_name=author.name if author else author_name,
            author_role=author.role if author else None,
            content=message.content,
            created_at=created_at,
            reply_to_id=message.parent_message_id,
            attachments=list(message.attachments or []),
            thread=activity,
        )

    async def mark_seen(self, message_id: str, user_id: str) -> ReadReceiptRecord:
        """
        Record that a user has seen a message (idempotent upsert).

        Args:
            message_id: Seen message
            user_id: Reader

        Returns:
            ReadReceiptRecord: Receipt with the latest read_at

        Raises:
            MessageNotFoundError: If the message does not exist
            PersistenceError: If the store fails
        """
        async with self._transaction("mark_seen", message_id=message_id):
            message = await self._get_message(message_id)
            receipt = await read_receipt_crud.upsert(
                self.db,
                message_id=message_id,
                user_id=user_id,
                read_at=self.clock(),
            )

        return ReadReceiptRecord(
            message_id=message_id,
            thread_id=message.thread_id,
            user_id=user_id,
            read_at=ensure_utc(receipt.read_at),
        )

    async def edit_message(
        self,
        message_id: str,
        user_id: str,
        content: str,
    ) -> EditedMessage:
        """
        Edit a message within the author's edit window.

        Args:
            message_id: Message to edit
            user_id: Requesting user (must be the author)
            content: New content

        Returns:
            EditedMessage: Updated content and timestamp

        Raises:
            MessageNotFoundError: If the message does not exist
            PermissionDeniedError: If the user is not the author
            EditWindowExpiredError: If the edit window has elapsed
            ValidationError: If the message was deleted
            PersistenceError: If the store fails
        """
        async with self._transaction("edit_message", message_id=message_id):
            message = await self._get_message(message_id)
            if message.author_id != user_id:
                raise PermissionDeniedError(
                    "You can only edit your own messages",
                    {"message_id": message_id},
                )
            if message.is_deleted:
                raise ValidationError("Deleted messages cannot be edited", field="messageId")
            self._check_edit_window(message)

            now = self.clock()
            await message_crud.edit_content(self.db, message, content, at=now)

        return EditedMessage(
            id=message.id,
            thread_id=message.thread_id,
            content=content,
            edited_at=now,
        )

    async def delete_message(
        self,
        message_id: str,
        user_id: str,
        is_manager: bool = False,
    ) -> DeletedMessage:
        """
        Soft delete a message.

        Authors may delete within the edit window; managers at any time.

        Args:
            message_id: Message to delete
            user_id: Requesting user
            is_manager: Bypass author and window checks

        Returns:
            DeletedMessage: Identifiers of the deleted message

        Raises:
            MessageNotFoundError: If the message does not exist
            PermissionDeniedError: If the user may not delete it
            EditWindowExpiredError: If the author's window has elapsed
            PersistenceError: If the store fails
        """
        async with self._transaction("delete_message", message_id=message_id):
            message = await self._get_message(message_id)
            if not is_manager:
                if message.author_id != user_id:
                    raise PermissionDeniedError(
                        "You cannot delete this message",
                        {"message_id": message_id},
                    )
                self._check_edit_window(message)

            await message_crud.soft_delete(self.db, message, at=self.clock())

        return DeletedMessage(id=message.id, thread_id=message.thread_id)

    async def update_thread_status(
        self,
        thread_id: str,
        status: ThreadStatus,
        user_id: str,
    ) -> ThreadStatusChange:
        """
        Change thread status and record a SYSTEM message.

        Args:
            thread_id: Thread to update
            status: New status
            user_id: Acting user

        Returns:
            ThreadStatusChange: New status and the system message id

        Raises:
            ThreadNotFoundError: If the thread does not exist
            PersistenceError: If the store fails
        """
        async with self._transaction("update_thread_status", thread_id=thread_id):
            thread = await thread_crud.update_status(self.db, thread_id, status)
            if thread is None:
                raise ThreadNotFoundError(thread_id)

            system_message = await message_crud.create(
                self.db,
                thread_id=thread_id,
                author_id=user_id,
                content=STATUS_SYSTEM_MESSAGES[status],
                type=MessageType.SYSTEM,
            )

        return ThreadStatusChange(
            thread_id=thread_id,
            status=status,
            user_id=user_id,
            system_message_id=system_message.id,
        )

    async def _get_message(self, message_id: str) -> MessageModel:
        message = await message_crud.get_by_id(self.db, message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    def _check_edit_window(self, message: MessageModel) -> None:
        created_at = ensure_utc(message.created_at)
        if self.clock() - created_at > EDIT_WINDOW:
            raise EditWindowExpiredError(
                "Messages can only be changed within 5 minutes of posting",
                {"message_id": message.id},
            )

    def _transaction(self, operation: str, **context: Any) -> "_Transaction":
        return _Transaction(self.db, operation, context)


class _Transaction:
    """
    Commit on success, roll back on any error.

    Domain errors propagate unchanged; store errors are wrapped in
    PersistenceError with the operation name.
    """

    def __init__(self, db: AsyncSession, operation: str, context: dict[str, Any]) -> None:
        self.db = db
        self.operation = operation
        self.context = context

    async def __aenter__(self) -> "_Transaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            try:
                await self.db.commit()
            except (SQLAlchemyError, OSError) as e:
                await self.db.rollback()
                raise PersistenceError(
                    f"Failed to commit {self.operation}",
                    operation=self.operation,
                    details=dict(self.context),
                ) from e
            return False

        await self.db.rollback()
        if isinstance(exc, CommsException):
            return False
        if isinstance(exc, (SQLAlchemyError, OSError)):
            logger.warning(
                "Store operation failed",
                extra={
                    "operation": self.operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise PersistenceError(
                f"Failed to {self.operation.replace('_', ' ')}",
                operation=self.operation,
                details=dict(self.context),
            ) from exc
        return False
