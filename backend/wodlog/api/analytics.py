"""
Movement analytics API endpoints.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wodlog.core.database import get_db
from wodlog.services.analytics import MovementStatsCalculator, Period
from wodlog.services.workouts import WorkoutStoreError

router = APIRouter()


@router.get("/movements")
async def movement_analytics(
    period: Period = Query(Period.ALL_TIME, description="7days, 30days or alltime"),
    userId: Optional[str] = Query(None, description="Only this user's workouts"),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Most frequent and highest-volume movements over a period.
    """
    try:
        analytics = await MovementStatsCalculator(db).compute(period, user_id=userId)
    except WorkoutStoreError:
        raise HTTPException(status_code=503, detail="Workout store unavailable")
    return analytics.to_dict()
