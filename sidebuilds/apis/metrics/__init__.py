"""Project metrics API.

Daily revenue / users / traffic per project, and the dashboard summary
built from them.
"""

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from sidebuilds.apis.activity import today_utc
from sidebuilds.apis.projects import get_owned_project
from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.database import get_db_connection
from sidebuilds.libs.metrics import MetricsSummary, aggregate_metrics, window_start
from sidebuilds.libs.models import MetricCreate, TimeRange

logger = logging.getLogger(__name__)

router = APIRouter()


class MetricResponse(BaseModel):
    """One day of metrics for a project"""
    id: str
    project_id: str
    metric_date: date
    revenue: float
    users: int
    traffic: int
    created_at: datetime


class ProjectMetricsResponse(BaseModel):
    """Metric history plus the latest day as headline numbers"""
    metrics: List[MetricResponse]
    latest: Optional[MetricResponse] = None


def to_metric_response(row) -> MetricResponse:
    return MetricResponse(
        id=str(row["id"]),
        project_id=str(row["project_id"]),
        metric_date=row["metric_date"],
        revenue=row["revenue"] or 0,
        users=row["users"] or 0,
        traffic=row["traffic"] or 0,
        created_at=row["created_at"],
    )


@router.get("/metrics/summary", response_model=MetricsSummary)
async def get_metrics_summary(
    user: AuthorizedUser,
    time_range: TimeRange = Query(TimeRange.MONTH, alias="range"),
):
    """
    Dashboard summary across all of the user's projects.

    Args:
        range: Window of metric rows to include (7d, 30d or 90d)
    """
    since = window_start(time_range, today_utc())

    conn = await get_db_connection()
    try:
        projects = await conn.fetch(
            "SELECT id, name, stage, status FROM projects WHERE user_id = $1 ORDER BY created_at",
            user.sub,
        )
        if not projects:
            return MetricsSummary()

        metrics = await conn.fetch(
            """
            SELECT m.*
            FROM project_metrics m
            JOIN projects p ON p.id = m.project_id
            WHERE p.user_id = $1 AND m.metric_date >= $2
            ORDER BY m.metric_date ASC
            """,
            user.sub,
            since,
        )
    finally:
        await conn.close()

    return aggregate_metrics([dict(p) for p in projects], [dict(m) for m in metrics])


@router.get("/projects/{project_id}/metrics", response_model=ProjectMetricsResponse)
async def list_project_metrics(project_id: UUID, user: AuthorizedUser, limit: int = 30):
    """Metric rows for one project, newest first."""
    conn = await get_db_connection()
    try:
        await get_owned_project(conn, project_id, user.sub)
        rows = await conn.fetch(
            """
            SELECT * FROM project_metrics
            WHERE project_id = $1
            ORDER BY metric_date DESC
            LIMIT $2
            """,
            project_id,
            min(max(limit, 1), 365),
        )
        metrics = [to_metric_response(row) for row in rows]
        return ProjectMetricsResponse(metrics=metrics, latest=metrics[0] if metrics else None)
    finally:
        await conn.close()


@router.post("/projects/{project_id}/metrics", response_model=MetricResponse)
async def record_project_metrics(project_id: UUID, metric: MetricCreate, user: AuthorizedUser):
    """
    Record a day of metrics for a project.

    There is one row per project per day; recording the same day again
    overwrites it.
    """
    metric_date = metric.metric_date or today_utc()

    conn = await get_db_connection()
    try:
        await get_owned_project(conn, project_id, user.sub)
        row = await conn.fetchrow(
            """
            INSERT INTO project_metrics (project_id, metric_date, revenue, users, traffic)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (project_id, metric_date)
            DO UPDATE SET
                revenue = EXCLUDED.revenue,
                users = EXCLUDED.users,
                traffic = EXCLUDED.traffic
            RETURNING *
            """,
            project_id,
            metric_date,
            metric.revenue,
            metric.users,
            metric.traffic,
        )
        return to_metric_response(row)
    finally:
        await conn.close()


@router.delete("/projects/{project_id}/metrics/{metric_id}")
async def delete_project_metric(project_id: UUID, metric_id: UUID, user: AuthorizedUser):
    """Delete one metric row."""
    conn = await get_db_connection()
    try:
        await get_owned_project(conn, project_id, user.sub)
        result = await conn.fetchval(
            "DELETE FROM project_metrics WHERE id = $1 AND project_id = $2 RETURNING id",
            metric_id,
            project_id,
        )
        if not result:
            raise HTTPException(status_code=404, detail="Metric not found")
        return {"success": True, "message": "Metric deleted successfully"}
    finally:
        await conn.close()
