"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), dispose_engine(): Async connection management
  - ThreadModel, MessageModel, ReadReceiptModel, UserModel: Comms entities
  - thread_crud, message_crud, read_receipt_crud, user_crud: CRUD operation singletons

Dependencies: sqlalchemy, commshub.configs
System role: Persistence sink for the realtime relay
"""

from commshub.boundary.db.base import Base, TimestampMixin, UUIDMixin
from commshub.boundary.db.connection import (
    dispose_engine,
    get_async_engine,
    get_async_session_factory,
)
from commshub.boundary.db.models import (
    MessageModel,
    MessageType,
    ReadReceiptModel,
    ThreadModel,
    ThreadStatus,
    UserModel,
)
from commshub.boundary.db.CRUD import (
    BaseCRUD,
    message_crud,
    read_receipt_crud,
    thread_crud,
    user_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "dispose_engine",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "MessageModel",
    "MessageType",
    "ReadReceiptModel",
    "ThreadModel",
    "ThreadStatus",
    "UserModel",
    # CRUD
    "BaseCRUD",
    "message_crud",
    "read_receipt_crud",
    "thread_crud",
    "user_crud",
]
