"""Coin policy: effort -> coins table and the split across participants."""

import logging
import math
from collections.abc import Mapping
from typing import Any, assert_never

from src.core.config import Constants
from src.core.errors import ErrorCode, InvalidInputError
from src.core.logging import span
from src.domain.house import CoinPolicy
from src.domain.task import CustomSplit, FirstCome, SharedSplit
from src.models.service_models import AssigneeSource, EffectiveAssignees
from src.services import house_config_service, user_service


logger = logging.getLogger(__name__)


def _as_non_negative_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value >= 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_coin_table(raw: Mapping[Any, Any] | None) -> dict[int, int]:
    """Build a complete 1-5 effort table from stored or user-supplied values.

    Keys may arrive as strings (JSON objects). Missing or invalid entries fall
    back to the default table.
    """
    table = dict(Constants.DEFAULT_COINS_BY_EFFORT)
    if not raw:
        return table

    for key, value in raw.items():
        effort = _as_non_negative_int(key)
        coins = _as_non_negative_int(value)
        if effort is None or coins is None or effort not in table:
            continue
        table[effort] = coins
    return table


def coins_for_effort(effort: int, policy: CoinPolicy | None = None) -> int:
    """Coin value of a task with the given effort.

    Unknown or invalid efforts fall back to ``effort * 5``.
    """
    table = policy.coins_by_effort if policy else Constants.DEFAULT_COINS_BY_EFFORT
    coins = table.get(effort)
    if coins is None or coins < 0:
        return max(0, effort) * Constants.FALLBACK_COINS_PER_EFFORT
    return coins


def split_coins(
    total: int,
    policy: FirstCome | SharedSplit | CustomSplit,
    *,
    user_id: str,
    effective: EffectiveAssignees,
) -> int:
    """Coins credited to ``user_id`` for one completion of a task worth ``total``.

    - First: the completer receives the full amount.
    - Shared: floor division across the effective assignees (remainder dropped).
    - Custom: floor of the user's percentage share. A completer without a
      configured percentage (room override or overseer) falls back to the
      shared rule.

    Args:
        total: Full coin value of the task
        policy: The task's assignment policy variant
        user_id: User being credited
        effective: Effective assignee set for the task

    Returns:
        Non-negative coin amount
    """
    participants = max(1, len(effective.user_ids))

    match policy:
        case FirstCome():
            return total
        case SharedSplit():
            return total // participants
        case CustomSplit(percentages=percentages):
            if effective.source == AssigneeSource.TASK and user_id in percentages:
                return math.floor(total * percentages[user_id] / Constants.PERCENTAGE_TOTAL)
            return total // participants
        case _:
            assert_never(policy)


async def get_coin_policy() -> CoinPolicy:
    """Get the household coin policy (defaults when never configured)."""
    raw = await house_config_service.read_setting(Constants.SETTING_COINS_BY_EFFORT)
    return CoinPolicy(coins_by_effort=normalize_coin_table(raw if isinstance(raw, dict) else None))


async def update_coin_policy(*, acting_user_id: str, coins_by_effort: Mapping[Any, Any]) -> CoinPolicy:
    """Replace the effort -> coins table (admin only).

    Args:
        acting_user_id: Admin performing the change
        coins_by_effort: Mapping of every effort 1-5 to a non-negative integer

    Returns:
        The stored CoinPolicy

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        InvalidInputError: If an effort level is missing or a value is invalid
    """
    with span("coin_service.update_coin_policy"):
        await user_service.require_admin(acting_user_id)

        parsed: dict[int, int] = {}
        for key, value in coins_by_effort.items():
            effort = _as_non_negative_int(key)
            coins = _as_non_negative_int(value)
            if effort is None or not Constants.MIN_EFFORT <= effort <= Constants.MAX_EFFORT or coins is None:
                raise InvalidInputError(ErrorCode.INVALID_COIN_TABLE, f"Invalid coin entry {key!r}: {value!r}")
            parsed[effort] = coins

        expected = set(range(Constants.MIN_EFFORT, Constants.MAX_EFFORT + 1))
        if set(parsed) != expected:
            raise InvalidInputError(ErrorCode.INVALID_COIN_TABLE, "Every effort level 1-5 needs a coin value")

        await house_config_service.write_setting(
            Constants.SETTING_COINS_BY_EFFORT, {str(effort): coins for effort, coins in sorted(parsed.items())}
        )
        logger.info("coin_policy_updated", extra={"user_id": acting_user_id, "coins_by_effort": parsed})
        return CoinPolicy(coins_by_effort=parsed)


async def reset_coin_policy(*, acting_user_id: str) -> CoinPolicy:
    """Restore the default effort -> coins table (admin only)."""
    with span("coin_service.reset_coin_policy"):
        await user_service.require_admin(acting_user_id)
        await house_config_service.delete_setting(Constants.SETTING_COINS_BY_EFFORT)
        logger.info("coin_policy_reset", extra={"user_id": acting_user_id})
        return CoinPolicy()
