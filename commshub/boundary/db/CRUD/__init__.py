"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from commshub.boundary.db.CRUD import thread_crud, message_crud

    thread = await thread_crud.get_by_id(db, thread_id)
"""

from commshub.boundary.db.CRUD.base_crud import BaseCRUD
from commshub.boundary.db.CRUD.thread_crud import ThreadActivity, ThreadCRUD, thread_crud
from commshub.boundary.db.CRUD.message_crud import (
    DELETED_MESSAGE_PLACEHOLDER,
    MessageCRUD,
    ReadReceiptCRUD,
    message_crud,
    read_receipt_crud,
)
from commshub.boundary.db.CRUD.user_crud import UserCRUD, user_crud

__all__ = [
    "BaseCRUD",
    "DELETED_MESSAGE_PLACEHOLDER",
    "ThreadActivity",
    "ThreadCRUD",
    "thread_crud",
    "MessageCRUD",
    "message_crud",
    "ReadReceiptCRUD",
    "read_receipt_crud",
    "UserCRUD",
    "user_crud",
]
