"""
Message and read receipt ORM models.

Messages are created by the persistence bridge when a send event arrives;
edits and deletes are explicit events that update the row in place (soft
delete). Read receipts are unique per (message, user).

Dependencies: sqlalchemy, commshub.boundary.db.base
System role: Message persistence
"""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commshub.boundary.db.base import Base, TimestampMixin, UUIDMixin, utc_now


class MessageType(str, enum.Enum):
    """
    Message kinds.

    TEXT: Authored by a user
    SYSTEM: Generated on thread events (status changes)
    """

    TEXT = "TEXT"
    SYSTEM = "SYSTEM"


class MessageModel(Base, UUIDMixin, TimestampMixin):
    """
    Message ORM model.

    Attributes:
        id: String primary key (auto-generated)
        thread_id: Parent thread (cascade delete)
        author_id: User id of the author
        content: Message body ("[Message deleted]" after soft delete)
        type: MessageType enum
        parent_message_id: Message this one replies to (optional)
        attachments: JSON list of attachment descriptors
        is_edited / edited_at: Set by an edit event
        is_deleted / deleted_at: Set by a delete event
    """

    __tablename__ = "comms_messages"

    thread_id: Mapped[str] = mapped_column(
        ForeignKey("comms_threads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, native_enum=False),
        nullable=False,
        default=MessageType.TEXT,
    )

    parent_message_id: Mapped[str | None] = mapped_column(
        ForeignKey("comms_messages.id", ondelete="SET NULL"),
        nullable=True,
    )

    attachments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    thread = relationship("ThreadModel", back_populates="messages")
    read_receipts = relationship(
        "ReadReceiptModel",
        back_populates="message",
        cascade="all, delete-orphan",
    )


class ReadReceiptModel(Base, UUIDMixin):
    """
    Read receipt ORM model.

    Constraints:
        (message_id, user_id): UNIQUE; re-marking updates read_at
    """

    __tablename__ = "comms_message_read_receipts"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_read_receipt_message_user"),
    )

    message_id: Mapped[str] = mapped_column(
        ForeignKey("comms_messages.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    message = relationship("MessageModel", back_populates="read_receipts")
