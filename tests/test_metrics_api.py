from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tests.conftest import NOW, OTHER_USER_ID, USER_ID, make_project

TODAY = date(2024, 3, 15)


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr("sidebuilds.apis.metrics.today_utc", lambda: TODAY)


def metric_row(project_id, metric_date, revenue, users=0, traffic=0):
    return {
        "id": uuid4(),
        "project_id": project_id,
        "metric_date": metric_date,
        "revenue": Decimal(str(revenue)),
        "users": users,
        "traffic": traffic,
        "created_at": NOW,
    }


def test_summary_aggregates_users_projects(client, db):
    alpha, beta = uuid4(), uuid4()
    db.on("fetch", "SELECT id, name, stage, status FROM projects", [
        {"id": alpha, "name": "Alpha", "stage": "mvp", "status": "active"},
        {"id": beta, "name": "Beta", "stage": "launched", "status": "archived"},
    ])
    db.on("fetch", "FROM project_metrics m", [
        metric_row(alpha, date(2024, 1, 1), 10, users=3),
        metric_row(beta, date(2024, 1, 1), 25, users=1),
        metric_row(beta, date(2024, 1, 2), 5, traffic=40),
    ])

    response = client.get("/metrics/summary?range=7d")

    assert response.status_code == 200
    body = response.json()
    assert body["total_projects"] == 2
    assert body["active_projects"] == 1
    assert body["total_revenue"] == 40
    assert body["total_users"] == 4
    assert body["total_traffic"] == 40
    assert body["top_project"]["name"] == "Beta"
    assert [point["value"] for point in body["revenue_chart"]] == [35, 5]
    assert body["stage_distribution"] == {"mvp": 1, "launched": 1}
    _, _, args = db.calls_matching("FROM project_metrics m")[0]
    assert args[0] == USER_ID
    assert args[1] == date(2024, 3, 8)


def test_summary_without_projects_skips_metrics_query(client, db):
    body = client.get("/metrics/summary").json()

    assert body["total_projects"] == 0
    assert body["revenue_chart"] == []
    assert body["top_project"] is None
    assert not db.calls_matching("project_metrics")


def test_summary_rejects_unknown_range(client, db):
    assert client.get("/metrics/summary?range=1y").status_code == 422


def test_list_project_metrics_with_latest(client, db):
    project = make_project()
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)
    db.on("fetch", "FROM project_metrics", [
        metric_row(project["id"], date(2024, 1, 2), 12.5, users=4),
        metric_row(project["id"], date(2024, 1, 1), 3),
    ])

    body = client.get(f"/projects/{project['id']}/metrics?limit=1000").json()

    assert [m["metric_date"] for m in body["metrics"]] == ["2024-01-02", "2024-01-01"]
    assert body["latest"]["revenue"] == 12.5
    _, _, args = db.calls_matching("FROM project_metrics")[0]
    assert args[1] == 365


def test_record_metrics_upserts_one_row_per_day(client, db):
    project = make_project()
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)
    db.on("fetchrow", "INSERT INTO project_metrics", lambda project_id, metric_date, revenue, users, traffic: metric_row(
        project_id, metric_date, revenue, users, traffic
    ))

    response = client.post(
        f"/projects/{project['id']}/metrics",
        json={"metric_date": "2024-01-05", "revenue": 19.99, "users": 7},
    )

    assert response.status_code == 200
    assert response.json()["revenue"] == 19.99
    _, query, args = db.calls_matching("INSERT INTO project_metrics")[0]
    assert "ON CONFLICT (project_id, metric_date)" in query
    assert args[1:] == (date(2024, 1, 5), 19.99, 7, 0)


def test_record_metrics_defaults_to_today(client, db):
    project = make_project()
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)
    db.on("fetchrow", "INSERT INTO project_metrics", lambda *args: metric_row(*args))

    client.post(f"/projects/{project['id']}/metrics", json={})

    _, _, args = db.calls_matching("INSERT INTO project_metrics")[0]
    assert args[1] == TODAY


def test_record_metrics_rejects_negative_values(client, db):
    response = client.post(f"/projects/{uuid4()}/metrics", json={"revenue": -1})
    assert response.status_code == 422


def test_record_metrics_for_someone_elses_project(client, db):
    project = make_project(user_id=OTHER_USER_ID)
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)

    response = client.post(f"/projects/{project['id']}/metrics", json={"revenue": 5})

    assert response.status_code == 403
    assert not db.calls_matching("INSERT INTO project_metrics")


def test_delete_missing_metric(client, db):
    project = make_project()
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)

    response = client.delete(f"/projects/{project['id']}/metrics/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["detail"] == "Metric not found"


def test_delete_metric(client, db):
    project = make_project()
    metric_id = uuid4()
    db.on("fetchrow", "SELECT * FROM projects WHERE id", project)
    db.on("fetchval", "DELETE FROM project_metrics", metric_id)

    response = client.delete(f"/projects/{project['id']}/metrics/{metric_id}")

    assert response.status_code == 200
    _, _, args = db.calls_matching("DELETE FROM project_metrics")[0]
    assert args == (metric_id, project["id"])
