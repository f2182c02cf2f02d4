"""User service for household members, roles and coin balances."""

import logging

from src.core import db_client
from src.core.config import Constants
from src.core.errors import ErrorCode, InvalidInputError, NotFoundError, PermissionDeniedError
from src.core.logging import log_with_user_context, span
from src.domain.create_models import UserCreate
from src.domain.user import User, UserRole


logger = logging.getLogger(__name__)


async def get_user(user_id: str) -> User:
    """Fetch a user by ID.

    Raises:
        NotFoundError: If the user does not exist
    """
    try:
        record = await db_client.get_record(collection="users", record_id=user_id)
    except KeyError as e:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, f"User not found: {user_id}") from e
    return User.model_validate(record)


async def list_users() -> list[User]:
    """List every household user."""
    records = await db_client.list_records(collection="users", per_page=Constants.DEFAULT_PER_PAGE_LIMIT)
    return [User.model_validate(record) for record in records]


async def list_child_ids() -> list[str]:
    """IDs of every user with the child role."""
    records = await db_client.list_records(
        collection="users",
        filter_query=f'role = "{UserRole.CHILD}"',
        per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
    )
    return [record["id"] for record in records]


async def require_admin(user_id: str) -> User:
    """Return the user if they are an admin.

    Raises:
        NotFoundError: If the user does not exist
        PermissionDeniedError: If the user is not an admin
    """
    user = await get_user(user_id)
    if user.role != UserRole.ADMIN:
        log_with_user_context(logger, "warning", "Admin-only operation rejected", user_id=user_id)
        raise PermissionDeniedError(ErrorCode.ADMIN_ONLY, "Only admins may perform this operation")
    return user


async def create_user(*, data: UserCreate, acting_user_id: str | None = None) -> User:
    """Create a household user.

    The very first user bootstraps the household and always becomes an admin.
    Afterwards only admins may add users.

    Args:
        data: Name and requested role (defaults to member)
        acting_user_id: Admin creating the user; ignored for the first user

    Returns:
        The created User

    Raises:
        PermissionDeniedError: If a non-admin tries to add a user
        NotFoundError: If the acting user does not exist
    """
    with span("user_service.create_user"):
        existing = await db_client.list_records(collection="users", per_page=1)

        role = data.role
        if not existing:
            role = UserRole.ADMIN
        else:
            if acting_user_id is None:
                raise PermissionDeniedError(ErrorCode.ADMIN_ONLY, "Only admins may add users")
            await require_admin(acting_user_id)

        record = await db_client.create_record(
            collection="users",
            data={"name": data.name, "role": role, "coins": 0, "current_streak": 0, "last_active_date": None},
        )
        logger.info("Created user", extra={"user_id": record["id"], "role": role})
        return User.model_validate(record)


async def set_role(*, acting_user_id: str, user_id: str, role: UserRole) -> User:
    """Change a user's role (admin only), keeping at least one admin.

    Raises:
        PermissionDeniedError: If the acting user is not an admin, or the change
            would demote the last admin
        NotFoundError: If either user does not exist
    """
    with span("user_service.set_role"):
        await require_admin(acting_user_id)
        user = await get_user(user_id)

        if user.role == UserRole.ADMIN and role != UserRole.ADMIN:
            admins = await db_client.list_records(
                collection="users",
                filter_query=f'role = "{UserRole.ADMIN}"',
                per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
            )
            if len(admins) <= 1:
                raise PermissionDeniedError(ErrorCode.LAST_ADMIN, "The household needs at least one admin")

        record = await db_client.update_record(collection="users", record_id=user_id, data={"role": role})
        log_with_user_context(logger, "info", "User role changed", user_id=user_id, role=role)
        return User.model_validate(record)


async def adjust_coins(*, acting_user_id: str, user_id: str, delta: int) -> User:
    """Add ``delta`` coins to a user's balance (admin only), never dropping below 0.

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If either user does not exist
        InvalidInputError: If delta is zero
    """
    with span("user_service.adjust_coins"):
        await require_admin(acting_user_id)
        if delta == 0:
            raise InvalidInputError(ErrorCode.INVALID_COIN_ADJUSTMENT, "Coin adjustment must be non-zero")

        async with db_client.transaction():
            user = await get_user(user_id)
            new_balance = max(0, user.coins + delta)
            record = await db_client.update_record(
                collection="users",
                record_id=user_id,
                data={"coins": new_balance},
            )

        log_with_user_context(
            logger, "info", "Coins adjusted by admin", user_id=user_id, delta=delta, balance=new_balance
        )
        return User.model_validate(record)
