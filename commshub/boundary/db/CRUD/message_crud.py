"""
Message and read receipt CRUD operations.

Dependencies: sqlalchemy, commshub.boundary.db.models.message_model
System role: Message persistence operations
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from commshub.boundary.db.CRUD.base_crud import BaseCRUD
from commshub.boundary.db.models.message_model import MessageModel, ReadReceiptModel

DELETED_MESSAGE_PLACEHOLDER = "[Message deleted]"

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class MessageCRUD(BaseCRUD[MessageModel]):
    """
    CRUD operations for MessageModel.

    Edits and deletes update the row in place; rows are never removed by
    the realtime layer.
    """

    def __init__(self) -> None:
        """Initialize MessageCRUD with MessageModel."""
        super().__init__(MessageModel)

    async def get_by_thread(
        self,
        session: AsyncSession,
        thread_id: str,
        limit: int | None = None,
    ) -> Sequence[MessageModel]:
        """
        Retrieve messages of a thread in creation order.

        Args:
            session: Async database session
            thread_id: Thread id
            limit: Maximum number of messages (None for all)

        Returns:
            Sequence of MessageModel
        """
        stmt = (
            select(MessageModel)
            .where(MessageModel.thread_id == thread_id)
            .order_by(MessageModel.created_at)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_by_thread(self, session: AsyncSession, thread_id: str) -> int:
        """Number of message rows stored for a thread."""
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.thread_id == thread_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def edit_content(
        self,
        session: AsyncSession,
        message: MessageModel,
        content: str,
        at: datetime,
    ) -> MessageModel:
        """
        Replace message content and flag it as edited.

        Args:
            session: Async database session
            message: Loaded message row
            content: New content
            at: Edit timestamp

        Returns:
            The updated message
        """
        message.content = content
        message.is_edited = True
        message.edited_at = at
        await session.flush()
        return message

    async def soft_delete(
        self,
        session: AsyncSession,
        message: MessageModel,
        at: datetime,
    ) -> MessageModel:
        """
        Flag a message as deleted and blank its content.

        Args:
            session: Async database session
            message: Loaded message row
            at: Deletion timestamp

        Returns:
            The updated message
        """
        message.is_deleted = True
        message.deleted_at = at
        message.content = DELETED_MESSAGE_PLACEHOLDER
        await session.flush()
        return message


class ReadReceiptCRUD(BaseCRUD[ReadReceiptModel]):
    """CRUD operations for ReadReceiptModel."""

    def __init__(self) -> None:
        """Initialize ReadReceiptCRUD with ReadReceiptModel."""
        super().__init__(ReadReceiptModel)

    async def upsert(
        self,
        session: AsyncSession,
        message_id: str,
        user_id: str,
        read_at: datetime,
    ) -> ReadReceiptModel:
        """
        Insert a receipt or refresh read_at of the existing one.

        Uses INSERT ... ON CONFLICT (message_id, user_id) DO UPDATE so two
        concurrent marks never produce duplicate rows.

        Args:
            session: Async database session
            message_id: Message id
            user_id: Reader id
            read_at: Read timestamp

        Returns:
            The stored receipt

        Raises:
            NotImplementedError: If the bound dialect has no upsert support here
        """
        dialect = session.get_bind().dialect.name
        insert_factory = _UPSERT_INSERTS.get(dialect)
        if insert_factory is None:
            raise NotImplementedError(f"Read receipt upsert not supported on {dialect}")

        stmt = insert_factory(ReadReceiptModel).values(
            message_id=message_id,
            user_id=user_id,
            read_at=read_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ReadReceiptModel.message_id, ReadReceiptModel.user_id],
            set_={"read_at": stmt.excluded.read_at},
        )
        await session.execute(stmt)

        return await self.get_for_user(session, message_id, user_id)

    async def get_for_user(
        self,
        session: AsyncSession,
        message_id: str,
        user_id: str,
    ) -> ReadReceiptModel | None:
        """Receipt of one user for one message."""
        stmt = (
            select(ReadReceiptModel)
            .where(
                ReadReceiptModel.message_id == message_id,
                ReadReceiptModel.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_message(
        self,
        session: AsyncSession,
        message_id: str,
    ) -> Sequence[ReadReceiptModel]:
        """All receipts for a message."""
        stmt = select(ReadReceiptModel).where(ReadReceiptModel.message_id == message_id)
        result = await session.execute(stmt)
        return result.scalars().all()


message_crud = MessageCRUD()
read_receipt_crud = ReadReceiptCRUD()
