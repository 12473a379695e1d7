"""
Database models package.

Exports:
  - ThreadModel, ThreadStatus: Thread ORM model and status enum
  - MessageModel, MessageType, ReadReceiptModel: Message and receipt models
  - UserModel: Read-only author lookup

Dependencies: sqlalchemy, commshub.boundary.db.base
System role: Database model definitions for domain entities
"""

from commshub.boundary.db.models.thread_model import ThreadModel, ThreadStatus
from commshub.boundary.db.models.message_model import MessageModel, MessageType, ReadReceiptModel
from commshub.boundary.db.models.user_model import UserModel

__all__ = [
    "ThreadModel",
    "ThreadStatus",
    "MessageModel",
    "MessageType",
    "ReadReceiptModel",
    "UserModel",
]
