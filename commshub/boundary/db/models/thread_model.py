"""
Thread ORM model.

A conversation thread. The realtime layer only touches its message
metadata (last message pointer and count) and its status.

Dependencies: sqlalchemy, commshub.boundary.db.base
System role: Conversation metadata persistence
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commshub.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ThreadStatus(str, enum.Enum):
    """
    Thread lifecycle states.

    OPEN: Active discussion
    RESOLVED: Question answered, kept visible
    ARCHIVED: Hidden from the default inbox
    """

    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"


class ThreadModel(Base, UUIDMixin, TimestampMixin):
    """
    Thread ORM model.

    Attributes:
        id: String primary key (auto-generated)
        subject: Thread title
        status: ThreadStatus enum
        message_count: Number of messages posted (incremented per send)
        last_message_at: Timestamp of the latest message
        last_message_by_id: Author of the latest message
        messages: Messages in this thread (cascade delete)
    """

    __tablename__ = "comms_threads"

    subject: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    status: Mapped[ThreadStatus] = mapped_column(
        Enum(ThreadStatus, native_enum=False),
        nullable=False,
        default=ThreadStatus.OPEN,
    )

    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_message_by_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        doc="User id of the latest message author",
    )

    messages = relationship(
        "MessageModel",
        back_populates="thread",
        cascade="all, delete-orphan",
    )
