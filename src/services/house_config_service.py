"""House-wide settings: vacation state and notification type toggles.

Settings live as JSON values in the ``app_settings`` table, one row per key.
Readers get typed defaults when a key has never been written.
"""

import json
import logging
from datetime import UTC, date, datetime
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.config import Constants
from src.core.logging import span
from src.domain.house import NotificationType, NotificationTypeSettings, VacationState
from src.services import user_service


logger = logging.getLogger(__name__)


async def read_setting(key: str) -> Any | None:
    """Return the decoded JSON value stored under ``key``, or None if absent or corrupt."""
    record = await db_client.get_first_record(
        collection="app_settings",
        filter_query=f'key = "{db_client.sanitize_param(key)}"',
    )
    if record is None:
        return None

    try:
        return json.loads(record["value"])
    except (TypeError, json.JSONDecodeError):
        logger.warning("app_setting_corrupt", extra={"key": key})
        return None


async def write_setting(key: str, value: Any) -> None:
    """Insert or replace the JSON value stored under ``key``."""
    payload = json.dumps(value)
    record = await db_client.get_first_record(
        collection="app_settings",
        filter_query=f'key = "{db_client.sanitize_param(key)}"',
    )
    if record is None:
        await db_client.create_record(collection="app_settings", data={"key": key, "value": payload})
    else:
        await db_client.update_record(collection="app_settings", record_id=record["id"], data={"value": payload})
    logger.info("app_setting_written", extra={"key": key})


async def delete_setting(key: str) -> None:
    """Remove ``key`` so readers fall back to defaults."""
    record = await db_client.get_first_record(
        collection="app_settings",
        filter_query=f'key = "{db_client.sanitize_param(key)}"',
    )
    if record is not None:
        await db_client.delete_record(collection="app_settings", record_id=record["id"])
        logger.info("app_setting_deleted", extra={"key": key})


async def get_vacation_state() -> VacationState:
    """Get the global vacation state (inactive when never configured).

    Expiry is not persisted here: ``VacationState.is_active_at`` ignores a
    vacation whose end date has passed.
    """
    raw = await read_setting(Constants.SETTING_VACATION)
    if not raw:
        return VacationState()

    try:
        return VacationState.model_validate(raw)
    except ValidationError:
        logger.warning("vacation_state_invalid_using_default", extra={"raw": raw})
        return VacationState()


async def set_vacation_state(
    *,
    acting_user_id: str,
    active: bool,
    end_date: date | None = None,
    now: datetime | None = None,
) -> VacationState:
    """Switch vacation mode on or off (admin only).

    Turning it on records ``now`` as the instant decay freezes. Turning it
    off clears the start and end dates.

    Args:
        acting_user_id: User performing the change
        active: Desired vacation state
        end_date: Optional last day of the vacation (inclusive)
        now: Override for the current time

    Returns:
        The stored VacationState

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If the acting user does not exist
    """
    with span("house_config_service.set_vacation_state"):
        await user_service.require_admin(acting_user_id)
        now = now or datetime.now(UTC)

        current = await get_vacation_state()
        if active:
            start = current.start_date if current.is_active_at(now) and current.start_date else now
            state = VacationState(active=True, start_date=start, end_date=end_date)
        else:
            state = VacationState()

        await write_setting(Constants.SETTING_VACATION, state.model_dump(mode="json"))
        logger.info("vacation_state_updated", extra={"active": state.active, "user_id": acting_user_id})
        return state


async def get_notification_settings() -> NotificationTypeSettings:
    """Get per-type notification toggles, merging stored values over the defaults."""
    raw = await read_setting(Constants.SETTING_NOTIFICATION_TYPES)
    if not isinstance(raw, dict):
        return NotificationTypeSettings()

    merged = NotificationTypeSettings().model_dump()
    merged.update({key: bool(value) for key, value in raw.items() if key in merged})
    return NotificationTypeSettings.model_validate(merged)


async def update_notification_settings(
    *,
    acting_user_id: str,
    changes: dict[str, bool],
) -> NotificationTypeSettings:
    """Update notification type toggles (admin only); unknown keys are ignored."""
    with span("house_config_service.update_notification_settings"):
        await user_service.require_admin(acting_user_id)

        current = (await get_notification_settings()).model_dump()
        current.update({key: bool(value) for key, value in changes.items() if key in current})
        settings_model = NotificationTypeSettings.model_validate(current)

        await write_setting(Constants.SETTING_NOTIFICATION_TYPES, settings_model.model_dump())
        return settings_model


async def is_notification_type_enabled(notification_type: NotificationType) -> bool:
    """Decide whether notifications of ``notification_type`` should be sent."""
    return (await get_notification_settings()).is_enabled(notification_type)
