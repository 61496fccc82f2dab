"""Plan router.

Active plan lookup, and generation of a fresh plan from the profile alone
(a user's first plan, or starting over without the adherence analysis).
"""

from fastapi import APIRouter, Depends, HTTPException, status

from healthplan.core.adherence.enums import PlanType
from healthplan.dependencies import get_plan_store, get_planner, get_profile
from healthplan.schemas.api import ErrorResponse
from healthplan.schemas.plan import Plan
from healthplan.schemas.user_profile import UserProfile
from healthplan.services.adaptive_planning import AdaptivePlanner
from healthplan.services.plan_store import PlanStore

router = APIRouter(prefix="/api/users/{user_id}/plans", tags=["plans"])


@router.get(
    "/active/{plan_type}",
    response_model=Plan,
    responses={
        200: {"description": "The active plan"},
        404: {"model": ErrorResponse, "description": "User or active plan not found"},
    },
)
async def get_active_plan(
    plan_type: PlanType,
    profile: UserProfile = Depends(get_profile),
    plan_store: PlanStore = Depends(get_plan_store),
):
    """Get the user's active meal or training plan."""
    plan = await plan_store.get_active(profile.id, plan_type)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active {plan_type.value} plan",
        )
    return plan


@router.post(
    "/{plan_type}",
    response_model=Plan,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Plan generated and made active"},
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "A generation is already running"},
        502: {"model": ErrorResponse, "description": "Plan generation failed"},
        504: {"model": ErrorResponse, "description": "Plan generation timed out"},
    },
)
async def generate_plan(
    plan_type: PlanType,
    planner: AdaptivePlanner = Depends(get_planner),
):
    """Generate a new meal or training plan starting today.

    Any active plan of the same type is archived once the new plan exists.
    """
    return await planner.generate_plan(plan_type)
