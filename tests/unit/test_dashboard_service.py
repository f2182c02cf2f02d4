"""Unit tests for dashboard_service module."""

from datetime import timedelta

import pytest

from src.domain.user import UserRole
from src.services import dashboard_service, house_config_service


pytestmark = pytest.mark.unit


@pytest.fixture
async def kitchen(household, fixed_now):
    room = await household.add_room("Kitchen", sort_order=1)
    half = await household.add_task(room["id"], "Wipe counters", last_completed_at=fixed_now - timedelta(days=3.5))
    never = await household.add_task(room["id"], "Defrost freezer", effort=3)
    return {"room": room, "half": half, "never": never}


async def test_room_and_house_health(kitchen, household, fixed_now):
    await household.add_room("Bathroom", sort_order=2)

    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert [r.name for r in dashboard.rooms] == ["Kitchen", "Bathroom"]
    kitchen_summary, bathroom_summary = dashboard.rooms
    # (50 * 1 + 0 * 3) / 4 = 12.5
    assert kitchen_summary.health == 13
    assert kitchen_summary.critical_count == 1
    assert len(kitchen_summary.tasks) == 2
    assert bathroom_summary.health == 100
    assert bathroom_summary.critical_count == 0
    assert dashboard.house_health == 13


async def test_quests_split_by_due_date(kitchen, fixed_now):
    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert [q.task_id for q in dashboard.todays_quests] == [kitchen["never"]["id"]]
    assert [q.task_id for q in dashboard.next_tasks] == [kitchen["half"]["id"]]
    assert dashboard.next_tasks[0].due_in_days == 4


async def test_seasonal_tasks_excluded_from_quests(household, fixed_now):
    room = await household.add_room()
    await household.add_task(room["id"], "Clean gutters", is_seasonal=True)

    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert dashboard.todays_quests == []
    assert dashboard.rooms[0].health == 0


async def test_quests_capped(household, fixed_now):
    room = await household.add_room()
    for index in range(12):
        await household.add_task(room["id"], f"Chore {index}")

    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert len(dashboard.todays_quests) == 10


async def test_vacation_freezes_health(household, fixed_now):
    admin = await household.add_user("Alice", UserRole.ADMIN)
    room = await household.add_room()
    await household.add_task(room["id"], last_completed_at=fixed_now - timedelta(days=5.5))
    await house_config_service.set_vacation_state(
        acting_user_id=admin["id"], active=True, now=fixed_now - timedelta(days=2)
    )

    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert dashboard.vacation.active
    assert dashboard.rooms[0].tasks[0].health == 50
    assert dashboard.house_health == 50


async def test_empty_house(patched_db, fixed_now):
    dashboard = await dashboard_service.get_dashboard(now=fixed_now)

    assert dashboard.rooms == []
    assert dashboard.house_health == 100
    assert not dashboard.vacation.active
