"""
Integration tests for thread, message and read receipt CRUD.

Runs against in-memory SQLite (aiosqlite).

System role: Verification of persistence primitives
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from commshub.boundary.db.base import ensure_utc, utc_now
from commshub.boundary.db.CRUD.message_crud import (
    DELETED_MESSAGE_PLACEHOLDER,
    message_crud,
    read_receipt_crud,
)
from commshub.boundary.db.CRUD.thread_crud import thread_crud
from commshub.boundary.db.models.message_model import MessageType
from commshub.boundary.db.models.thread_model import ThreadStatus


class TestThreadCRUD:
    """Test suite for ThreadCRUD."""

    @pytest.mark.asyncio
    async def test_record_message_should_increment_count(self, test_async_db, sample_thread) -> None:
        """Test each recorded message bumps count and last-message pointers."""
        # Arrange
        first_at = utc_now()
        second_at = first_at + timedelta(seconds=5)

        # Act
        first = await thread_crud.record_message(test_async_db, sample_thread.id, "u1", first_at)
        second = await thread_crud.record_message(test_async_db, sample_thread.id, "u2", second_at)

        # Assert
        assert first.message_count == 1
        assert second.message_count == 2
        assert second.last_message_by_id == "u2"
        assert second.last_message_at == second_at

    @pytest.mark.asyncio
    async def test_record_message_should_return_none_for_missing_thread(self, test_async_db) -> None:
        assert await thread_crud.record_message(test_async_db, "missing", "u1", utc_now()) is None

    @pytest.mark.asyncio
    async def test_update_status_should_persist(self, test_async_db, sample_thread) -> None:
        updated = await thread_crud.update_status(test_async_db, sample_thread.id, ThreadStatus.ARCHIVED)

        assert updated is not None
        assert updated.status is ThreadStatus.ARCHIVED
        assert await thread_crud.update_status(test_async_db, "missing", ThreadStatus.OPEN) is None


class TestMessageCRUD:
    """Test suite for MessageCRUD."""

    @pytest.mark.asyncio
    async def test_create_should_apply_defaults(self, test_async_db, sample_thread) -> None:
        message = await message_crud.create(
            test_async_db,
            thread_id=sample_thread.id,
            author_id="u1",
            content="Hello",
        )

        assert message.id
        assert message.type is MessageType.TEXT
        assert message.attachments == []
        assert message.is_edited is False
        assert message.is_deleted is False
        assert ensure_utc(message.created_at) <= utc_now()

    @pytest.mark.asyncio
    async def test_create_for_unknown_thread_should_violate_foreign_key(self, test_async_db) -> None:
        with pytest.raises(IntegrityError):
            await message_crud.create(
                test_async_db,
                thread_id="missing",
                author_id="u1",
                content="Hello",
            )
        await test_async_db.rollback()

    @pytest.mark.asyncio
    async def test_get_by_thread_should_order_by_creation(self, test_async_db, sample_thread) -> None:
        for content in ("one", "two", "three"):
            await message_crud.create(
                test_async_db,
                thread_id=sample_thread.id,
                author_id="u1",
                content=content,
            )

        messages = await message_crud.get_by_thread(test_async_db, sample_thread.id)

        assert [m.content for m in messages] == ["one", "two", "three"]
        assert await message_crud.count_by_thread(test_async_db, sample_thread.id) == 3

    @pytest.mark.asyncio
    async def test_soft_delete_should_keep_row(self, test_async_db, sample_thread) -> None:
        message = await message_crud.create(
            test_async_db,
            thread_id=sample_thread.id,
            author_id="u1",
            content="secret",
        )

        await message_crud.soft_delete(test_async_db, message, at=utc_now())

        stored = await message_crud.get_by_id(test_async_db, message.id)
        assert stored.is_deleted is True
        assert stored.content == DELETED_MESSAGE_PLACEHOLDER
        assert stored.deleted_at is not None


class TestReadReceiptCRUD:
    """Test suite for ReadReceiptCRUD.upsert."""

    @pytest.mark.asyncio
    async def test_upsert_should_keep_one_row_per_user(self, test_async_db, sample_thread) -> None:
        """Test re-marking refreshes read_at instead of inserting a duplicate."""
        # Arrange
        message = await message_crud.create(
            test_async_db,
            thread_id=sample_thread.id,
            author_id="u1",
            content="Hello",
        )
        first_at = utc_now()
        later_at = first_at + timedelta(minutes=1)

        # Act
        await read_receipt_crud.upsert(test_async_db, message.id, "u2", first_at)
        receipt = await read_receipt_crud.upsert(test_async_db, message.id, "u2", later_at)
        await read_receipt_crud.upsert(test_async_db, message.id, "u3", first_at)

        # Assert
        receipts = await read_receipt_crud.get_by_message(test_async_db, message.id)
        assert sorted(r.user_id for r in receipts) == ["u2", "u3"]
        assert ensure_utc(receipt.read_at) == later_at
