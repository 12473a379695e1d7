"""
User CRUD operations (read-only).

Dependencies: sqlalchemy, commshub.boundary.db.models.user_model
System role: Author metadata lookup
"""

from commshub.boundary.db.CRUD.base_crud import BaseCRUD
from commshub.boundary.db.models.user_model import UserModel


class UserCRUD(BaseCRUD[UserModel]):
    """Lookups against the auth layer's users table."""

    def __init__(self) -> None:
        """Initialize UserCRUD with UserModel."""
        super().__init__(UserModel)


user_crud = UserCRUD()
