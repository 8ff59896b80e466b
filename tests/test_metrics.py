from datetime import date
from decimal import Decimal

import pytest

from sidebuilds.libs.metrics import (
    aggregate_metrics,
    calculate_growth,
    format_currency,
    stage_distribution,
    top_projects,
    window_start,
)
from sidebuilds.libs.models import TimeRange


def test_example_summary():
    projects = [{"id": 1, "stage": "mvp"}, {"id": 2, "stage": "launched"}]
    metrics = [
        {"project_id": 1, "metric_date": "2024-01-01", "revenue": 10},
        {"project_id": 2, "metric_date": "2024-01-01", "revenue": 25},
    ]
    summary = aggregate_metrics(projects, metrics)
    assert summary.total_revenue == 35
    assert summary.top_project.id == "2"
    assert summary.stage_distribution == {"mvp": 1, "launched": 1}


def test_empty_metrics_for_existing_projects():
    projects = [
        {"id": "a", "name": "Alpha", "stage": "idea", "status": "active"},
        {"id": "b", "name": "Beta", "stage": "mvp", "status": "archived"},
    ]
    summary = aggregate_metrics(projects, [])
    assert summary.total_revenue == 0
    assert summary.total_users == 0
    assert summary.revenue_chart == []
    assert summary.user_chart == []
    assert summary.top_project is None
    assert summary.total_projects == 2
    assert summary.active_projects == 1


def test_no_projects_at_all():
    summary = aggregate_metrics([], [])
    assert summary.total_projects == 0
    assert summary.stage_distribution == {}
    assert summary.latest_activity == []


def test_series_are_one_point_per_day_in_ascending_order():
    projects = [{"id": "a", "name": "Alpha", "stage": "mvp"}, {"id": "b", "name": "Beta", "stage": "mvp"}]
    metrics = [
        {"project_id": "a", "metric_date": date(2024, 1, 3), "revenue": Decimal("5.50"), "users": 3, "traffic": 40},
        {"project_id": "b", "metric_date": date(2024, 1, 1), "revenue": Decimal("2"), "users": 1, "traffic": 10},
        {"project_id": "a", "metric_date": date(2024, 1, 1), "revenue": Decimal("1"), "users": 2, "traffic": 5},
        {"project_id": "b", "metric_date": date(2024, 1, 2), "revenue": None, "users": None, "traffic": None},
    ]
    summary = aggregate_metrics(projects, metrics)

    assert [p.date for p in summary.revenue_chart] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert [p.value for p in summary.revenue_chart] == [3.0, 0.0, 5.5]
    assert [p.value for p in summary.user_chart] == [3, 0, 3]
    assert [p.value for p in summary.traffic_chart] == [15, 0, 40]
    assert summary.revenue_chart[0].label == "Jan 01"
    assert summary.total_users == 6
    assert summary.total_traffic == 55


def test_revenue_series_sums_to_total():
    projects = [{"id": i, "stage": "mvp"} for i in range(3)]
    metrics = [
        {"project_id": i % 3, "metric_date": f"2024-02-{day:02d}", "revenue": 0.1 * day + i}
        for i in range(3)
        for day in range(1, 29)
    ]
    summary = aggregate_metrics(projects, metrics)
    series_total = 0.0
    for point in summary.revenue_chart:
        series_total += point.value
    assert series_total == summary.total_revenue


def test_top_project_ties_go_to_first_encountered():
    projects = [{"id": "x", "name": "X"}, {"id": "y", "name": "Y"}]
    metrics = [
        {"project_id": "y", "metric_date": "2024-01-01", "revenue": 50},
        {"project_id": "x", "metric_date": "2024-01-02", "revenue": 50},
    ]
    assert aggregate_metrics(projects, metrics).top_project.id == "x"


def test_no_top_project_without_revenue():
    projects = [{"id": "x"}]
    metrics = [{"project_id": "x", "metric_date": "2024-01-01", "revenue": 0, "users": 10}]
    assert aggregate_metrics(projects, metrics).top_project is None


def test_aggregation_is_deterministic():
    projects = [{"id": "a", "stage": "idea"}, {"id": "b", "stage": "launched"}]
    metrics = [
        {"project_id": "a", "metric_date": "2024-01-02", "revenue": 7, "created_at": "2024-01-02T10:00:00"},
        {"project_id": "b", "metric_date": "2024-01-01", "revenue": 3, "created_at": "2024-01-01T10:00:00"},
    ]
    assert aggregate_metrics(projects, metrics) == aggregate_metrics(projects, metrics)
    assert aggregate_metrics(projects, list(reversed(metrics))).revenue_chart == aggregate_metrics(projects, metrics).revenue_chart


def test_latest_activity_names_projects():
    projects = [{"id": "a", "name": "Alpha"}]
    metrics = [
        {"project_id": "a", "metric_date": "2024-01-01", "revenue": 1, "created_at": "2024-01-01T09:00:00"},
        {"project_id": "gone", "metric_date": "2024-01-02", "revenue": 2, "created_at": "2024-01-02T09:00:00"},
    ]
    activity = aggregate_metrics(projects, metrics).latest_activity
    assert [a.project_name for a in activity] == ["Unknown Project", "Alpha"]


def test_stage_distribution_counts_in_first_seen_order():
    projects = [{"stage": "mvp"}, {"stage": "idea"}, {"stage": "mvp"}]
    assert list(stage_distribution(projects).items()) == [("mvp", 2), ("idea", 1)]


def test_top_projects_ranking():
    projects = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    metrics = [
        {"project_id": "b", "revenue": 30},
        {"project_id": "c", "revenue": 10},
        {"project_id": "c", "revenue": 25},
    ]
    ranked = top_projects(projects, metrics, limit=2)
    assert [p["id"] for p in ranked] == ["c", "b"]
    assert ranked[0]["total_revenue"] == 35


@pytest.mark.parametrize("current,previous,expected", [(150, 100, 50.0), (50, 100, -50.0), (10, 0, 0.0), (10, None, 0.0)])
def test_calculate_growth(current, previous, expected):
    assert calculate_growth(current, previous) == expected


def test_format_currency():
    assert format_currency(1234.6) == "$1,235"
    assert format_currency(0) == "$0"
    assert format_currency(-42) == "-$42"


def test_window_start():
    today = date(2024, 3, 31)
    assert window_start(TimeRange.WEEK, today) == date(2024, 3, 24)
    assert window_start(TimeRange.MONTH, today) == date(2024, 3, 1)
    assert window_start(TimeRange.QUARTER, today) == date(2024, 1, 1)
