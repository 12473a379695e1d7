"""
Thread CRUD operations.

Extends BaseCRUD with the metadata writes the persistence bridge performs
after each message.

Dependencies: sqlalchemy, commshub.boundary.db.models.thread_model
System role: Thread persistence operations
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from commshub.boundary.db.CRUD.base_crud import BaseCRUD
from commshub.boundary.db.base import ensure_utc
from commshub.boundary.db.models.thread_model import ThreadModel, ThreadStatus


@dataclass(frozen=True)
class ThreadActivity:
    """Thread metadata after a message was recorded."""

    thread_id: str
    message_count: int
    last_message_at: datetime | None
    last_message_by_id: str | None


class ThreadCRUD(BaseCRUD[ThreadModel]):
    """CRUD operations for ThreadModel."""

    def __init__(self) -> None:
        """Initialize ThreadCRUD with ThreadModel."""
        super().__init__(ThreadModel)

    async def record_message(
        self,
        session: AsyncSession,
        id: str,
        author_id: str,
        at: datetime,
    ) -> ThreadActivity | None:
        """
        Touch thread metadata for a newly created message.

        Sets last_message_at and last_message_by_id and increments
        message_count in a single UPDATE so concurrent sends never lose
        an increment.

        Args:
            session: Async database session
            id: Thread id
            author_id: Author of the new message
            at: Message creation time

        Returns:
            ThreadActivity with the new count, None if the thread does not exist
        """
        stmt = (
            update(ThreadModel)
            .where(ThreadModel.id == id)
            .values(
                last_message_at=at,
                last_message_by_id=author_id,
                message_count=ThreadModel.message_count + 1,
            )
            .returning(
                ThreadModel.message_count,
                ThreadModel.last_message_at,
                ThreadModel.last_message_by_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return ThreadActivity(
            thread_id=id,
            message_count=row.message_count,
            last_message_at=ensure_utc(row.last_message_at),
            last_message_by_id=row.last_message_by_id,
        )

    async def update_status(
        self,
        session: AsyncSession,
        id: str,
        status: ThreadStatus,
    ) -> ThreadModel | None:
        """
        Update thread status.

        Args:
            session: Async database session
            id: Thread id
            status: New status

        Returns:
            Updated ThreadModel if found, None otherwise
        """
        return await self.update_by_id(session, id, status=status)


thread_crud = ThreadCRUD()
