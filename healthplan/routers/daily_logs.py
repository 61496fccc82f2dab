"""Daily log router.

Logging endpoints for today's meals and training sessions, plus a
date-range query over past logs.
"""

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, status

from healthplan.core.adherence.models import DailyLog, MealLogEntry, TrainingLogEntry
from healthplan.dependencies import get_log_store, get_profile, get_workflow
from healthplan.schemas.api import DailyLogListResponse, ErrorResponse, TodayResponse
from healthplan.schemas.user_profile import UserProfile
from healthplan.services.daily_logging import DailyLoggingWorkflow
from healthplan.services.log_store import LogStore

router = APIRouter(prefix="/api/users/{user_id}", tags=["daily-logs"])


def _today_response(workflow: DailyLoggingWorkflow) -> TodayResponse:
    return TodayResponse(
        date=workflow.day,
        meals=workflow.today_meals,
        sessions=workflow.today_sessions,
        scheduled_item_count=workflow.scheduled_item_count,
        log=workflow.today_log,
    )


@router.get(
    "/daily-log/today",
    response_model=TodayResponse,
    responses={
        200: {"description": "Today's planned items and log"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_today(
    workflow: DailyLoggingWorkflow = Depends(get_workflow),
) -> TodayResponse:
    """Get today's meals and sessions from the active plans and today's log."""
    await workflow.load()
    return _today_response(workflow)


@router.put(
    "/daily-log/today/meals",
    response_model=DailyLog,
    responses={
        200: {"description": "Meal recorded and day rescored"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Log changed concurrently"},
        503: {"model": ErrorResponse, "description": "Log store unavailable"},
    },
)
async def log_meal(
    entry: MealLogEntry,
    workflow: DailyLoggingWorkflow = Depends(get_workflow),
) -> DailyLog:
    """Record a meal for today. Re-sending the same meal_id replaces it."""
    return await workflow.log_meal(entry)


@router.put(
    "/daily-log/today/training",
    response_model=DailyLog,
    responses={
        200: {"description": "Session recorded and day rescored"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Log changed concurrently"},
        503: {"model": ErrorResponse, "description": "Log store unavailable"},
    },
)
async def log_training(
    entry: TrainingLogEntry,
    workflow: DailyLoggingWorkflow = Depends(get_workflow),
) -> DailyLog:
    """Record a training session for today. Re-sending a session_id replaces it."""
    return await workflow.log_training(entry)


@router.get(
    "/daily-logs",
    response_model=DailyLogListResponse,
    responses={
        200: {"description": "Logs in the range, oldest first"},
        400: {"model": ErrorResponse, "description": "start is after end"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def list_daily_logs(
    profile: UserProfile = Depends(get_profile),
    log_store: LogStore = Depends(get_log_store),
    start: dt.date | None = Query(default=None),
    end: dt.date | None = Query(default=None),
) -> DailyLogListResponse:
    """List daily logs within ``[start, end]``; either bound may be omitted."""
    if start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    logs = await log_store.get_by_date_range(profile.id, start, end)
    return DailyLogListResponse(logs=logs, total=len(logs))
