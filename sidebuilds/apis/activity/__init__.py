"""Activity API - daily work logging and build streaks."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import asyncpg
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.database import get_db_connection
from sidebuilds.libs.models import ActivityLogRequest
from sidebuilds.libs.streaks import (
    Milestone,
    StreakStats,
    achieved_milestones,
    compute_streak,
    displayed_streak,
    next_milestone,
    streak_stats,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# MODELS
# ============================================================================

class StreakResponse(BaseModel):
    """Streak card data."""
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date] = None
    today_completed: bool
    milestones: List[Milestone]
    next_milestone: Optional[Milestone] = None

class LogActivityResponse(BaseModel):
    """Result of logging today's work."""
    message: str
    already_logged: bool
    streak: StreakResponse

class ActivityLog(BaseModel):
    """A logged day of work."""
    id: str
    activity_type: str
    description: Optional[str] = None
    activity_date: date
    created_at: datetime

# ============================================================================
# HELPERS
# ============================================================================

def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def build_streak_response(row, today: date) -> StreakResponse:
    last_activity = row["last_activity_date"] if row else None
    stored = row["current_streak"] if row else 0
    longest = row["longest_streak"] if row else 0
    current = displayed_streak(last_activity, stored, today)
    return StreakResponse(
        current_streak=current,
        longest_streak=longest,
        last_activity_date=last_activity,
        today_completed=last_activity == today,
        milestones=achieved_milestones(current),
        next_milestone=next_milestone(current),
    )

# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/activity/log", response_model=LogActivityResponse)
async def log_activity(user: AuthorizedUser, request: Optional[ActivityLogRequest] = None):
    """
    Log today's work and advance the user's streak.

    The activity row and the streak counters are written in one transaction.
    The unique (user_id, activity_date) constraint makes a second call on the
    same day a no-op, and the streak row is locked while it is recomputed, so
    concurrent calls cannot double-increment.
    """
    request = request or ActivityLogRequest()
    today = today_utc()

    try:
        conn = await get_db_connection()
        try:
            async with conn.transaction():
                log_id = await conn.fetchval(
                    """
                    INSERT INTO activity_logs (user_id, activity_type, description, activity_date)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (user_id, activity_date) DO NOTHING
                    RETURNING id
                    """,
                    user.sub,
                    request.activity_type,
                    request.description,
                    today,
                )

                if log_id is None:
                    streak = await conn.fetchrow(
                        "SELECT * FROM user_streaks WHERE user_id = $1",
                        user.sub,
                    )
                    return LogActivityResponse(
                        message="Activity already logged for today",
                        already_logged=True,
                        streak=build_streak_response(streak, today),
                    )

                existing = await conn.fetchrow(
                    "SELECT * FROM user_streaks WHERE user_id = $1 FOR UPDATE",
                    user.sub,
                )
                update = compute_streak(
                    existing["last_activity_date"] if existing else None,
                    existing["current_streak"] if existing else 0,
                    existing["longest_streak"] if existing else 0,
                    today,
                )
                streak = await conn.fetchrow(
                    """
                    INSERT INTO user_streaks (user_id, current_streak, longest_streak, last_activity_date)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (user_id)
                    DO UPDATE SET
                        current_streak = EXCLUDED.current_streak,
                        longest_streak = EXCLUDED.longest_streak,
                        last_activity_date = EXCLUDED.last_activity_date,
                        updated_at = NOW()
                    RETURNING *
                    """,
                    user.sub,
                    update.current_streak,
                    update.longest_streak,
                    today,
                )
        finally:
            await conn.close()
    except asyncpg.PostgresError:
        logger.exception(f"Failed to log activity for user {user.sub}")
        raise HTTPException(status_code=500, detail="Failed to log activity")

    logger.info(f"User {user.sub} logged activity; streak is now {streak['current_streak']}")
    return LogActivityResponse(
        message="Activity logged successfully",
        already_logged=False,
        streak=build_streak_response(streak, today),
    )


@router.get("/activity/streak", response_model=StreakResponse)
async def get_streak(user: AuthorizedUser):
    """
    Get the user's streak card.

    A stored streak whose last activity is older than yesterday is reported
    as 0; the longest streak is kept.
    """
    conn = await get_db_connection()
    try:
        row = await conn.fetchrow(
            "SELECT * FROM user_streaks WHERE user_id = $1",
            user.sub,
        )
        return build_streak_response(row, today_utc())
    finally:
        await conn.close()


@router.get("/activity/logs", response_model=List[ActivityLog])
async def list_activity_logs(user: AuthorizedUser, days: int = 30):
    """The user's logged days within the last `days` days, newest first."""
    since = today_utc() - timedelta(days=min(max(days, 1), 366))
    conn = await get_db_connection()
    try:
        rows = await conn.fetch(
            """
            SELECT id, activity_type, description, activity_date, created_at
            FROM activity_logs
            WHERE user_id = $1 AND activity_date >= $2
            ORDER BY activity_date DESC
            """,
            user.sub,
            since,
        )
        return [
            ActivityLog(
                id=str(row["id"]),
                activity_type=row["activity_type"],
                description=row["description"],
                activity_date=row["activity_date"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
    finally:
        await conn.close()


@router.get("/activity/community", response_model=StreakStats)
async def get_community_streaks():
    """Community streak numbers: active streaks, streak rate and top streak."""
    conn = await get_db_connection()
    try:
        rows = await conn.fetch(
            "SELECT current_streak, longest_streak, last_activity_date FROM user_streaks"
        )
        return streak_stats((dict(row) for row in rows), today_utc())
    finally:
        await conn.close()
