"""Adaptive planning router.

Each request builds a fresh planner for the user and loads the trailing
adherence window, so the analysis always reflects the stored logs.
Whether a plan is being regenerated comes from the shared lock registry,
not from the request's own planner.

Dismissing a suggestion is client-side only: nothing is stored, and the
next load reports the suggestion again while the logs warrant it.
"""

from fastapi import APIRouter, Depends

from healthplan.core.adherence.enums import PlanType
from healthplan.dependencies import get_planner
from healthplan.schemas.api import (
    AdaptivePlanningResponse,
    ErrorResponse,
    PlanAdjustmentResponse,
)
from healthplan.services.adaptive_planning import AdaptivePlanner

router = APIRouter(
    prefix="/api/users/{user_id}/adaptive-planning", tags=["adaptive-planning"]
)


def _state_response(planner: AdaptivePlanner) -> AdaptivePlanningResponse:
    return AdaptivePlanningResponse(
        state=planner.state.value,
        analysis=planner.analysis,
        needs_adjustment=planner.needs_adjustment,
        adjusting=planner.adjusting,
        adjusting_plan_types=planner.adjusting_plan_types,
    )


@router.get(
    "",
    response_model=AdaptivePlanningResponse,
    responses={
        200: {"description": "Adherence analysis for the trailing window"},
        404: {"model": ErrorResponse, "description": "User not found"},
        503: {"model": ErrorResponse, "description": "Log store unavailable"},
    },
)
async def get_adaptive_planning(
    planner: AdaptivePlanner = Depends(get_planner),
) -> AdaptivePlanningResponse:
    """Analyze recent adherence and report whether an adjustment is suggested."""
    await planner.load()
    return _state_response(planner)


@router.post(
    "/adjust/{plan_type}",
    response_model=PlanAdjustmentResponse,
    status_code=201,
    responses={
        201: {"description": "Plan regenerated and previous plan archived"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {
            "model": ErrorResponse,
            "description": "No active plan, or an adjustment is already running",
        },
        502: {"model": ErrorResponse, "description": "Plan generation failed"},
        504: {"model": ErrorResponse, "description": "Plan generation timed out"},
    },
)
async def adjust_plan(
    plan_type: PlanType,
    planner: AdaptivePlanner = Depends(get_planner),
) -> PlanAdjustmentResponse:
    """Regenerate the active plan of ``plan_type`` around the detected patterns.

    The previous plan is archived only once a new plan has been generated.
    """
    analysis = await planner.load()
    plan = await planner.adjust(plan_type)
    return PlanAdjustmentResponse(plan=plan, analysis=analysis)
