"""HTTP routes over the chore engine.

Authentication happens upstream; the acting user arrives in the
``X-User-Id`` header.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.core.errors import TidyQuestError, classify_error_with_response
from src.models.service_models import AchievementProgress, CancellationResult, CompletionResult, Dashboard
from src.services import (
    achievement_service,
    completion_service,
    dashboard_service,
    notification_service,
    user_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tidyquest"])


class CompleteTaskRequest(BaseModel):
    """Optional body for completing a task."""

    on_behalf_of_user_id: str | None = None


async def tidyquest_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render a domain rejection as a structured JSON error."""
    response = classify_error_with_response(exc)
    if isinstance(exc, TidyQuestError):
        logger.info("request_rejected", extra={"reason": exc.reason, "category": exc.category.value})
    return JSONResponse(
        status_code=response.status_code,
        content={
            "error": response.code,
            "message": response.message,
            "suggestion": response.suggestion,
        },
    )


@router.get("/dashboard")
async def get_dashboard(x_user_id: str = Header(...)) -> Dashboard:
    """Household overview for the acting user."""
    await user_service.get_user(x_user_id)
    logger.debug("dashboard_requested", extra={"user_id": x_user_id})
    return await dashboard_service.get_dashboard()


@router.post("/tasks/{task_id}/complete")
async def complete_task(
    task_id: str,
    background_tasks: BackgroundTasks,
    body: CompleteTaskRequest | None = None,
    x_user_id: str = Header(...),
) -> CompletionResult:
    """Complete a task; notification events are dispatched after the response."""
    result = await completion_service.complete_task(
        task_id=task_id,
        acting_user_id=x_user_id,
        on_behalf_of_user_id=body.on_behalf_of_user_id if body else None,
    )
    if result.events:
        background_tasks.add_task(notification_service.dispatch_events, result.events)
    return result


@router.delete("/completions/{completion_id}")
async def cancel_completion(completion_id: str, x_user_id: str = Header(...)) -> CancellationResult:
    """Cancel a completion (admin only)."""
    return await completion_service.cancel_completion(completion_id=completion_id, acting_user_id=x_user_id)


@router.get("/users/{user_id}/achievements")
async def get_achievements(user_id: str, x_user_id: str = Header(...)) -> list[AchievementProgress]:
    """Achievement progress for a user."""
    await user_service.get_user(x_user_id)
    logger.debug("achievements_requested", extra={"user_id": user_id, "acting_user_id": x_user_id})
    return await achievement_service.get_achievements_for_user(user_id)
