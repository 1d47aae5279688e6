from __future__ import annotations

import pytest


@pytest.fixture
def planted(client, admin, officer, auth_headers):
    species = client.post(
        "/api/v1/species",
        json={"commonName": "Banyan", "scientificName": "Ficus benghalensis"},
        headers=auth_headers(admin),
    ).get_json()["data"]
    headers = auth_headers(officer)
    trees = []
    for lat, height in ((10.0, 5.0), (10.1, 7.0)):
        trees.append(
            client.post(
                "/api/v1/trees",
                json={"speciesId": species["id"], "location": {"latitude": lat, "longitude": 76.0}, "height": height},
                headers=headers,
            ).get_json()["data"]
        )
    client.post(
        "/api/v1/health-records",
        json={"treeId": trees[1]["id"], "inspectionDate": "2024-03-10T08:00:00Z", "status": "dead", "healthScore": 0},
        headers=headers,
    )
    return species, trees


def test_overview(client, viewer, auth_headers, planted) -> None:
    data = client.get("/api/v1/analytics/overview", headers=auth_headers(viewer)).get_json()["data"]

    assert data["totalTrees"] == 2
    assert data["totalSpecies"] == 1
    assert data["healthyTrees"] == 1
    assert data["healthPercentage"] == 50.0
    # admin, officer and viewer
    assert data["totalUsers"] == 3


def test_distribution_and_popular_species(client, viewer, auth_headers, planted) -> None:
    species, _ = planted
    headers = auth_headers(viewer)

    distribution = client.get("/api/v1/analytics/trees/distribution", headers=headers).get_json()["data"]
    popular = client.get("/api/v1/analytics/species/popular", headers=headers).get_json()["data"]

    assert {row["status"]: row["count"] for row in distribution["byStatus"]} == {"healthy": 1, "dead": 1}
    assert distribution["bySpecies"] == [{"speciesId": species["id"], "speciesName": "Banyan", "count": 2}]
    assert popular[0]["treeCount"] == 2
    assert popular[0]["avgHeight"] == 6.0
    assert popular[0]["healthPercentage"] == 50.0


def test_health_trends_group_by_month(client, viewer, auth_headers, planted) -> None:
    data = client.get(
        "/api/v1/analytics/health/trends?startDate=2024-01-01T00:00:00Z&endDate=2024-12-31T00:00:00Z",
        headers=auth_headers(viewer),
    ).get_json()["data"]

    assert data == [{"year": 2024, "month": 3, "status": "dead", "count": 1, "avgHealthScore": 0.0}]


def test_date_range_is_validated(client, viewer, auth_headers) -> None:
    headers = auth_headers(viewer)

    reversed_range = client.get(
        "/api/v1/analytics/trees/growth?startDate=2024-12-01&endDate=2024-01-01", headers=headers
    )
    garbage = client.get("/api/v1/analytics/trees/growth?startDate=yesterday", headers=headers)

    assert reversed_range.status_code == 400
    assert garbage.status_code == 400


def test_user_activity_is_admin_only(client, admin, viewer, officer, auth_headers, planted) -> None:
    assert client.get("/api/v1/analytics/users/activity", headers=auth_headers(viewer)).status_code == 403

    data = client.get("/api/v1/analytics/users/activity", headers=auth_headers(admin)).get_json()["data"]

    assert data["topTreeContributors"][0]["userId"] == officer.id
    assert data["topTreeContributors"][0]["treesAdded"] == 2
    assert data["topInspectors"][0]["inspections"] == 1


def test_monthly_report(client, viewer, auth_headers, planted) -> None:
    data = client.get(
        "/api/v1/analytics/reports/monthly?year=2024&month=3", headers=auth_headers(viewer)
    ).get_json()["data"]

    assert data["period"] == {"start": "2024-03-01T00:00:00", "end": "2024-04-01T00:00:00"}
    assert data["inspectionsCompleted"] == 1


def test_export_csv(client, admin, viewer, auth_headers, planted) -> None:
    assert client.get("/api/v1/analytics/reports/export", headers=auth_headers(viewer)).status_code == 403

    resp = client.get("/api/v1/analytics/reports/export?format=csv", headers=auth_headers(admin))

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert resp.headers["Content-Disposition"] == "attachment; filename=report.csv"
    assert resp.get_data(as_text=True).splitlines()[0] == "Metric,Value"


def test_export_rejects_unknown_format(client, admin, auth_headers) -> None:
    resp = client.get("/api/v1/analytics/reports/export?format=xml", headers=auth_headers(admin))

    assert resp.status_code == 400
