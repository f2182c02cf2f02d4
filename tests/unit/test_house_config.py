"""Tests for house-wide settings: vacation state and notification toggles."""

from datetime import UTC, date, datetime, timedelta

import pytest

from src.core.errors import PermissionDeniedError
from src.domain.house import NotificationType
from src.domain.user import UserRole
from src.services import house_config_service


pytestmark = pytest.mark.unit

NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


async def test_vacation_defaults_to_inactive(patched_db):
    state = await house_config_service.get_vacation_state()

    assert not state.active
    assert not state.is_active_at(NOW)


async def test_vacation_round_trip(household):
    admin = await household.add_user("Alice", UserRole.ADMIN)

    await house_config_service.set_vacation_state(
        acting_user_id=admin["id"], active=True, end_date=date(2026, 10, 20), now=NOW
    )
    state = await house_config_service.get_vacation_state()

    assert state.active
    assert state.start_date == NOW
    assert state.end_date == date(2026, 10, 20)
    assert state.is_active_at(NOW + timedelta(days=3))
    assert not state.is_active_at(datetime(2026, 10, 21, 0, 1, tzinfo=UTC))


async def test_reactivating_keeps_first_start(household):
    admin = await household.add_user("Alice", UserRole.ADMIN)
    await house_config_service.set_vacation_state(acting_user_id=admin["id"], active=True, now=NOW)

    state = await house_config_service.set_vacation_state(
        acting_user_id=admin["id"], active=True, end_date=date(2026, 10, 30), now=NOW + timedelta(days=2)
    )

    assert state.start_date == NOW


async def test_turning_vacation_off_clears_dates(household):
    admin = await household.add_user("Alice", UserRole.ADMIN)
    await house_config_service.set_vacation_state(acting_user_id=admin["id"], active=True, now=NOW)

    state = await house_config_service.set_vacation_state(acting_user_id=admin["id"], active=False, now=NOW)

    assert state.start_date is None
    assert not (await house_config_service.get_vacation_state()).active


async def test_vacation_admin_only(household):
    await household.add_user("Alice", UserRole.ADMIN)
    kid = await household.add_user("Cleo", UserRole.CHILD)

    with pytest.raises(PermissionDeniedError):
        await house_config_service.set_vacation_state(acting_user_id=kid["id"], active=True, now=NOW)


async def test_corrupt_setting_reads_as_default(patched_db):
    await patched_db.create_record("app_settings", {"key": "vacation", "value": "{not json"})

    assert not (await house_config_service.get_vacation_state()).active


async def test_notification_types_enabled_by_default(patched_db):
    for notification_type in NotificationType:
        assert await house_config_service.is_notification_type_enabled(notification_type)


async def test_update_notification_settings(household):
    admin = await household.add_user("Alice", UserRole.ADMIN)

    result = await house_config_service.update_notification_settings(
        acting_user_id=admin["id"], changes={"task_due": False, "bogus": False}
    )

    assert result.task_due is False
    assert result.achievement_unlocked is True
    assert not await house_config_service.is_notification_type_enabled(NotificationType.TASK_DUE)
    assert await house_config_service.is_notification_type_enabled(NotificationType.REWARD_REQUEST)
