"""Metrics aggregation for the dashboard charts.

Folds per-project daily metric rows into totals, per-day series, a revenue
leaderboard and the stage distribution. No I/O and no hidden state: the same
projects and metric rows always give the same summary.
"""

from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from sidebuilds.libs.models import TimeRange


class ChartPoint(BaseModel):
    """One day of a chart series"""
    date: str
    label: str
    value: float


class TopProject(BaseModel):
    """Project with the most revenue in the window"""
    id: str
    name: Optional[str] = None
    stage: Optional[str] = None
    total_revenue: float


class ActivityItem(BaseModel):
    """A recent metric row, labelled with its project"""
    date: str
    project_name: str
    revenue: float
    users: int
    traffic: int


class MetricsSummary(BaseModel):
    """Everything the metrics dashboard renders"""
    total_projects: int = 0
    active_projects: int = 0
    total_revenue: float = 0
    total_users: int = 0
    total_traffic: int = 0
    top_project: Optional[TopProject] = None
    revenue_chart: List[ChartPoint] = []
    user_chart: List[ChartPoint] = []
    traffic_chart: List[ChartPoint] = []
    stage_distribution: Dict[str, int] = {}
    latest_activity: List[ActivityItem] = []


def _number(value: Any) -> float:
    return float(value) if value else 0.0


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _label(day: date) -> str:
    return day.strftime("%b %d")


def window_start(time_range: TimeRange, today: date) -> date:
    """First metric_date included in a 7d/30d/90d window."""
    return today - timedelta(days=time_range.days)


def stage_distribution(projects: Iterable[dict]) -> Dict[str, int]:
    counts: Dict[str, int] = OrderedDict()
    for project in projects:
        stage = project.get("stage") or "unknown"
        counts[stage] = counts.get(stage, 0) + 1
    return dict(counts)


def project_revenues(projects: Sequence[dict], metrics: Sequence[dict]) -> List[dict]:
    """Each project with its summed revenue, in the order given."""
    totals: Dict[str, float] = {}
    for metric in metrics:
        key = str(metric.get("project_id"))
        totals[key] = totals.get(key, 0.0) + _number(metric.get("revenue"))
    return [
        {**project, "total_revenue": totals.get(str(project.get("id")), 0.0)}
        for project in projects
    ]


def top_projects(projects: Sequence[dict], metrics: Sequence[dict], limit: int = 5) -> List[dict]:
    """Projects ranked by summed revenue, highest first.

    The sort is stable, so projects with equal revenue keep their input order.
    """
    ranked = sorted(
        project_revenues(projects, metrics),
        key=lambda p: p["total_revenue"],
        reverse=True,
    )
    return ranked[:limit]


def calculate_growth(current: float, previous: Optional[float]) -> float:
    """Percent change from previous to current; 0 when there is no baseline."""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def format_currency(amount: float) -> str:
    """Whole-dollar USD, e.g. `$1,235`."""
    rounded = int(round(abs(amount)))
    sign = "-" if amount < 0 and rounded else ""
    return f"{sign}${rounded:,}"


def aggregate_metrics(projects: Sequence[dict], metrics: Sequence[dict]) -> MetricsSummary:
    """Build the dashboard summary.

    Args:
        projects: Project rows (id, name, stage, status)
        metrics: Metric rows (project_id, metric_date, revenue, users, traffic),
            already limited to the requested window; any order

    Returns:
        MetricsSummary. With no metric rows every total is zero, the series
        are empty and there is no top project.
    """
    daily: Dict[date, Dict[str, float]] = {}
    for metric in metrics:
        day = _as_date(metric.get("metric_date"))
        bucket = daily.setdefault(day, {"revenue": 0.0, "users": 0, "traffic": 0})
        bucket["revenue"] += _number(metric.get("revenue"))
        bucket["users"] += int(_number(metric.get("users")))
        bucket["traffic"] += int(_number(metric.get("traffic")))

    days = sorted(daily)
    revenue_chart = [
        ChartPoint(date=d.isoformat(), label=_label(d), value=daily[d]["revenue"])
        for d in days
    ]
    user_chart = [
        ChartPoint(date=d.isoformat(), label=_label(d), value=daily[d]["users"])
        for d in days
    ]
    traffic_chart = [
        ChartPoint(date=d.isoformat(), label=_label(d), value=daily[d]["traffic"])
        for d in days
    ]

    # Totals are folded from the series so the two always agree.
    total_revenue = 0.0
    for point in revenue_chart:
        total_revenue += point.value
    total_users = sum(int(daily[d]["users"]) for d in days)
    total_traffic = sum(int(daily[d]["traffic"]) for d in days)

    top = None
    for project in project_revenues(projects, metrics):
        if project["total_revenue"] > (top["total_revenue"] if top else 0):
            top = project

    names = {str(p.get("id")): p.get("name") for p in projects}
    newest = sorted(
        metrics,
        key=lambda m: (str(m.get("created_at") or ""), str(m.get("metric_date") or "")),
        reverse=True,
    )[:5]
    latest_activity = [
        ActivityItem(
            date=_as_date(m.get("metric_date")).isoformat(),
            project_name=names.get(str(m.get("project_id"))) or "Unknown Project",
            revenue=_number(m.get("revenue")),
            users=int(_number(m.get("users"))),
            traffic=int(_number(m.get("traffic"))),
        )
        for m in newest
    ]

    return MetricsSummary(
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if p.get("status") == "active"),
        total_revenue=total_revenue,
        total_users=total_users,
        total_traffic=total_traffic,
        top_project=TopProject(
            id=str(top["id"]),
            name=top.get("name"),
            stage=top.get("stage"),
            total_revenue=top["total_revenue"],
        ) if top else None,
        revenue_chart=revenue_chart,
        user_chart=user_chart,
        traffic_chart=traffic_chart,
        stage_distribution=stage_distribution(projects),
        latest_activity=latest_activity,
    )
