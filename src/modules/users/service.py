"""User management handlers."""

import logging

from src.core.db_client import sanitize_param
from src.core.deps import Deps
from src.core.errors import DomainRuleViolation, FieldError
from src.core.logging import span
from src.core.repository import Repository
from src.core.validation import require_text
from src.domain.user import EMAIL_PATTERN, MAX_NAME_LENGTH, User, UserRole
from src.modules.users.commands import ChangeUserRole, ChangeUserStatus, GetUser, RegisterUser


logger = logging.getLogger(__name__)


async def find_by_email(users: Repository[User], email: str) -> User | None:
    matches = await users.query(f'email = "{sanitize_param(email.strip().lower())}"', limit=1)
    return matches[0] if matches else None


async def create_user(users: Repository[User], *, name: str, email: str, role: UserRole) -> User:
    """Store a new active user. Used by the register handler and the admin bootstrap script."""
    with span("user_service.create_user"):
        user = User(name=name, email=email, role=role)
        await users.add(user)
        logger.info("Created user", extra={"user_id": user.id, "role": user.role.value})
        return user


def _ensure_can_manage_users(actor: User) -> None:
    if not actor.has_permission("manage:users"):
        raise DomainRuleViolation(f"User {actor.id} is not allowed to manage users")


def register_user_fields(request: RegisterUser, deps: Deps) -> list[FieldError]:
    errors = require_text("name", request.name, max_length=MAX_NAME_LENGTH)
    if not EMAIL_PATTERN.match(request.email.strip()):
        errors.append(FieldError(field="email", message="Email address is not valid"))
    return errors


async def email_is_unused(request: RegisterUser, deps: Deps) -> list[FieldError]:
    if await find_by_email(deps.users, request.email):
        return [FieldError(field="email", message="Email address is already registered")]
    return []


async def register_user(request: RegisterUser, deps: Deps) -> User:
    _ensure_can_manage_users(deps.actor)
    return await create_user(deps.users, name=request.name, email=request.email, role=request.role)


async def change_user_role(request: ChangeUserRole, deps: Deps) -> User:
    with span("user_service.change_user_role"):
        _ensure_can_manage_users(deps.actor)
        user = await deps.users.get(request.user_id)
        if user.id == deps.actor.id:
            raise DomainRuleViolation("Users cannot change their own role")
        user.role = request.role
        return await deps.users.update(user)


async def change_user_status(request: ChangeUserStatus, deps: Deps) -> User:
    with span("user_service.change_user_status"):
        _ensure_can_manage_users(deps.actor)
        user = await deps.users.get(request.user_id)
        if user.id == deps.actor.id:
            raise DomainRuleViolation("Users cannot change their own status")
        user.status = request.status
        return await deps.users.update(user)


async def get_user(request: GetUser, deps: Deps) -> User:
    return await deps.users.get(request.user_id)
