"""Unit tests for user_service module."""

import pytest
from pydantic import ValidationError

from src.core.errors import ErrorCode, InvalidInputError, NotFoundError, PermissionDeniedError
from src.domain.create_models import UserCreate
from src.domain.user import UserRole
from src.services import user_service


@pytest.mark.unit
class TestCreateUser:
    """Tests for create_user function."""

    async def test_first_user_becomes_admin(self, patched_db):
        """The first household user bootstraps as admin regardless of requested role."""
        user = await user_service.create_user(data=UserCreate(name="Alice", role=UserRole.CHILD))

        assert user.role == UserRole.ADMIN
        assert user.coins == 0
        assert user.current_streak == 0

    async def test_admin_adds_child(self, patched_db):
        """Admins can add users with any role."""
        admin = await user_service.create_user(data=UserCreate(name="Alice"))

        child = await user_service.create_user(
            data=UserCreate(name="Cleo", role=UserRole.CHILD), acting_user_id=admin.id
        )

        assert child.role == UserRole.CHILD

    async def test_non_admin_cannot_add_users(self, household):
        """Members cannot add users."""
        await household.add_user("Alice", UserRole.ADMIN)
        member = await household.add_user("Bob", UserRole.MEMBER)

        with pytest.raises(PermissionDeniedError):
            await user_service.create_user(data=UserCreate(name="Eve"), acting_user_id=member["id"])

    def test_name_validation(self):
        """Names with symbols are rejected by the input model."""
        with pytest.raises(ValidationError):
            UserCreate(name="<script>")


@pytest.mark.unit
class TestRoles:
    """Tests for set_role and require_admin."""

    async def test_last_admin_cannot_be_demoted(self, household):
        admin = await household.add_user("Alice", UserRole.ADMIN)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await user_service.set_role(acting_user_id=admin["id"], user_id=admin["id"], role=UserRole.MEMBER)
        assert exc_info.value.reason == ErrorCode.LAST_ADMIN

    async def test_admin_demoted_when_another_admin_exists(self, household):
        alice = await household.add_user("Alice", UserRole.ADMIN)
        bob = await household.add_user("Bob", UserRole.ADMIN)

        user = await user_service.set_role(acting_user_id=alice["id"], user_id=bob["id"], role=UserRole.MEMBER)

        assert user.role == UserRole.MEMBER

    async def test_unknown_user(self, patched_db):
        with pytest.raises(NotFoundError) as exc_info:
            await user_service.get_user("4040")
        assert exc_info.value.reason == ErrorCode.USER_NOT_FOUND

    async def test_list_child_ids(self, household):
        await household.add_user("Alice", UserRole.ADMIN)
        kid = await household.add_user("Cleo", UserRole.CHILD)

        assert await user_service.list_child_ids() == [kid["id"]]


@pytest.mark.unit
class TestAdjustCoins:
    """Tests for adjust_coins function."""

    async def test_adds_coins(self, household):
        admin = await household.add_user("Alice", UserRole.ADMIN)
        kid = await household.add_user("Cleo", UserRole.CHILD, coins=10)

        user = await user_service.adjust_coins(acting_user_id=admin["id"], user_id=kid["id"], delta=15)

        assert user.coins == 25

    async def test_floors_at_zero(self, household):
        admin = await household.add_user("Alice", UserRole.ADMIN)
        kid = await household.add_user("Cleo", UserRole.CHILD, coins=10)

        user = await user_service.adjust_coins(acting_user_id=admin["id"], user_id=kid["id"], delta=-50)

        assert user.coins == 0

    async def test_zero_delta_rejected(self, household):
        admin = await household.add_user("Alice", UserRole.ADMIN)

        with pytest.raises(InvalidInputError) as exc_info:
            await user_service.adjust_coins(acting_user_id=admin["id"], user_id=admin["id"], delta=0)
        assert exc_info.value.reason == ErrorCode.INVALID_COIN_ADJUSTMENT

    async def test_admin_only(self, household):
        await household.add_user("Alice", UserRole.ADMIN)
        member = await household.add_user("Bob", UserRole.MEMBER)

        with pytest.raises(PermissionDeniedError):
            await user_service.adjust_coins(acting_user_id=member["id"], user_id=member["id"], delta=5)
