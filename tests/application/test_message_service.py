"""
Test suite for MessageService (persistence bridge).

Uses in-memory SQLite for end-to-end transaction behavior and patches CRUD
calls to simulate store failures.

System role: Verification of persistence before relay
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from commshub.application.services.message_service import EDIT_WINDOW, MessageService
from commshub.boundary.db.base import ensure_utc, utc_now
from commshub.boundary.db.CRUD.message_crud import (
    DELETED_MESSAGE_PLACEHOLDER,
    message_crud,
    read_receipt_crud,
)
from commshub.boundary.db.CRUD.thread_crud import thread_crud
from commshub.boundary.db.models.message_model import MessageType
from commshub.boundary.db.models.thread_model import ThreadStatus
from commshub.core.exceptions import (
    EditWindowExpiredError,
    MessageNotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ThreadNotFoundError,
)


@pytest.fixture
def service(test_async_db) -> MessageService:
    """Provide MessageService bound to the test session."""
    return MessageService(db=test_async_db)


def later_clock(delta: timedelta):
    return lambda: utc_now() + delta


class TestPersistMessage:
    """Test suite for MessageService.persist_message."""

    @pytest.mark.asyncio
    async def test_persist_should_store_message_and_touch_thread(
        self, service, test_async_db, sample_thread
    ) -> None:
        """Test message row and thread metadata are committed together."""
        # Act
        persisted = await service.persist_message(
            thread_id=sample_thread.id,
            author_id="u1",
            content="Hello",
            author_name="Alice",
        )

        # Assert
        assert persisted.id
        assert persisted.content == "Hello"
        assert persisted.author_name == "Alice"
        assert persisted.thread.message_count == 1
        assert persisted.thread.last_message_by_id == "u1"
        assert persisted.thread.last_message_at == persisted.created_at

        await test_async_db.refresh(sample_thread)
        assert sample_thread.message_count == 1
        assert ensure_utc(sample_thread.last_message_at) == persisted.created_at

    @pytest.mark.asyncio
    async def test_persist_should_use_stored_author_metadata(
        self, service, sample_thread, sample_user
    ) -> None:
        persisted = await service.persist_message(
            thread_id=sample_thread.id,
            author_id=sample_user.id,
            content="Hi",
            author_name="ignored",
        )

        assert persisted.author_name == "Alice Martin"
        assert persisted.author_role == "MANAGER"

    @pytest.mark.asyncio
    async def test_persist_should_keep_reply_and_attachments(self, service, sample_thread) -> None:
        parent = await service.persist_message(sample_thread.id, "u1", "Question?")
        attachment = {"filename": "a.pdf", "mime_type": "application/pdf", "size": 3, "storage_key": "k"}

        reply = await service.persist_message(
            sample_thread.id,
            "u2",
            "Answer",
            reply_to_id=parent.id,
            attachments=[attachment],
        )

        assert reply.reply_to_id == parent.id
        assert reply.attachments == [attachment]
        assert reply.thread.message_count == 2

    @pytest.mark.asyncio
    async def test_missing_thread_should_roll_back(self, service, test_async_db) -> None:
        """Test an unknown thread is reported before the message foreign key fails."""
        with pytest.raises(ThreadNotFoundError) as exc_info:
            await service.persist_message("missing", "u1", "Hello")

        assert exc_info.value.error_code == "THREAD_NOT_FOUND"
        assert await message_crud.count_by_thread(test_async_db, "missing") == 0

    @pytest.mark.asyncio
    async def test_failed_insert_should_undo_thread_update(
        self, service, test_async_db, sample_thread
    ) -> None:
        """Test the thread counter is not bumped when the message insert fails."""
        # Arrange
        thread_id = sample_thread.id
        failure = OperationalError("INSERT INTO comms_messages", {}, Exception("disk full"))

        # Act
        with patch(
            "commshub.application.services.message_service.message_crud.create",
            new_callable=AsyncMock,
            side_effect=failure,
        ):
            with pytest.raises(PersistenceError):
                await service.persist_message(thread_id, "u1", "Hello")

        # Assert
        thread = await thread_crud.get_by_id(test_async_db, thread_id)
        await test_async_db.refresh(thread)
        assert thread.message_count == 0
        assert thread.last_message_at is None

    @pytest.mark.asyncio
    async def test_store_failure_should_raise_persistence_error(
        self, service, test_async_db, sample_thread
    ) -> None:
        """Test a failing thread update leaves no message and no count change."""
        # Arrange
        thread_id = sample_thread.id
        failure = OperationalError("UPDATE comms_threads", {}, Exception("connection lost"))

        # Act
        with patch(
            "commshub.application.services.message_service.thread_crud.record_message",
            new_callable=AsyncMock,
            side_effect=failure,
        ):
            with pytest.raises(PersistenceError) as exc_info:
                await service.persist_message(thread_id, "u1", "Hello")

        # Assert
        assert exc_info.value.details["operation"] == "create_message"
        assert await message_crud.count_by_thread(test_async_db, thread_id) == 0
        await test_async_db.refresh(sample_thread)
        assert sample_thread.message_count == 0


class TestMarkSeen:
    """Test suite for MessageService.mark_seen."""

    @pytest.mark.asyncio
    async def test_mark_seen_should_be_idempotent(self, service, test_async_db, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Hello")

        first = await service.mark_seen(message.id, "u2")
        service.clock = later_clock(timedelta(minutes=2))
        second = await service.mark_seen(message.id, "u2")

        receipts = await read_receipt_crud.get_by_message(test_async_db, message.id)
        assert len(receipts) == 1
        assert second.thread_id == sample_thread.id
        assert second.read_at > first.read_at

    @pytest.mark.asyncio
    async def test_mark_seen_should_reject_unknown_message(self, service) -> None:
        with pytest.raises(MessageNotFoundError):
            await service.mark_seen("missing", "u2")


class TestEditAndDelete:
    """Test suite for edit/delete windows and ownership."""

    @pytest.mark.asyncio
    async def test_author_should_edit_within_window(self, service, test_async_db, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Helo")

        edited = await service.edit_message(message.id, "u1", "Hello")

        stored = await message_crud.get_by_id(test_async_db, message.id)
        assert edited.content == "Hello"
        assert stored.content == "Hello"
        assert stored.is_edited is True

    @pytest.mark.asyncio
    async def test_edit_after_window_should_be_rejected(self, service, test_async_db, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Helo")
        service.clock = later_clock(EDIT_WINDOW + timedelta(seconds=1))

        with pytest.raises(EditWindowExpiredError):
            await service.edit_message(message.id, "u1", "Hello")

        stored = await message_crud.get_by_id(test_async_db, message.id)
        assert stored.content == "Helo"

    @pytest.mark.asyncio
    async def test_edit_by_other_user_should_be_forbidden(self, service, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Mine")

        with pytest.raises(PermissionDeniedError):
            await service.edit_message(message.id, "u2", "Yours")

    @pytest.mark.asyncio
    async def test_delete_should_soft_delete(self, service, test_async_db, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Oops")

        deleted = await service.delete_message(message.id, "u1")

        stored = await message_crud.get_by_id(test_async_db, message.id)
        assert deleted.thread_id == sample_thread.id
        assert stored.is_deleted is True
        assert stored.content == DELETED_MESSAGE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_manager_should_delete_after_window(self, service, sample_thread) -> None:
        message = await service.persist_message(sample_thread.id, "u1", "Old")
        service.clock = later_clock(timedelta(hours=1))

        with pytest.raises(EditWindowExpiredError):
            await service.delete_message(message.id, "u1")

        deleted = await service.delete_message(message.id, "manager", is_manager=True)
        assert deleted.id == message.id


class TestUpdateThreadStatus:
    """Test suite for MessageService.update_thread_status."""

    @pytest.mark.asyncio
    async def test_status_change_should_add_system_message(
        self, service, test_async_db, sample_thread
    ) -> None:
        change = await service.update_thread_status(sample_thread.id, ThreadStatus.RESOLVED, "u1")

        await test_async_db.refresh(sample_thread)
        system_message = await message_crud.get_by_id(test_async_db, change.system_message_id)
        assert sample_thread.status is ThreadStatus.RESOLVED
        assert system_message.type is MessageType.SYSTEM
        assert system_message.content == "Thread marked as resolved"

    @pytest.mark.asyncio
    async def test_status_change_for_missing_thread_should_raise(self, service) -> None:
        with pytest.raises(ThreadNotFoundError):
            await service.update_thread_status("missing", ThreadStatus.ARCHIVED, "u1")
