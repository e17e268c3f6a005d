"""Commands and queries handled by the users module."""

from pydantic import BaseModel

from src.domain.user import UserRole, UserStatus


class RegisterUser(BaseModel):
    name: str
    email: str
    role: UserRole = UserRole.DEVELOPER


class ChangeUserRole(BaseModel):
    user_id: str
    role: UserRole


class ChangeUserStatus(BaseModel):
    user_id: str
    status: UserStatus


class GetUser(BaseModel):
    user_id: str
