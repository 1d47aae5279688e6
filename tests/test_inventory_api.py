from __future__ import annotations

import pytest

NEEM = {
    "commonName": "Neem",
    "scientificName": "Azadirachta indica",
    "family": "Meliaceae",
    "conservationStatus": "LC",
    "characteristics": {"maxHeight": 20, "growthRate": "fast", "leafType": "evergreen"},
}


@pytest.fixture
def species_id(client, admin, auth_headers):
    resp = client.post("/api/v1/species", json=NEEM, headers=auth_headers(admin))
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]


def _tree(client, headers, species_id, lat=12.9716, lng=77.5946, **extra):
    payload = {"speciesId": species_id, "location": {"latitude": lat, "longitude": lng}, **extra}
    resp = client.post("/api/v1/trees", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_species_crud_and_search(client, admin, viewer, auth_headers, species_id) -> None:
    duplicate = client.post("/api/v1/species", json=NEEM, headers=auth_headers(admin))
    found = client.get("/api/v1/species/search?q=azadi", headers=auth_headers(viewer))
    updated = client.put(
        f"/api/v1/species/{species_id}", json={"isEndangered": True}, headers=auth_headers(admin)
    )

    assert duplicate.status_code == 409
    assert [s["id"] for s in found.get_json()["data"]] == [species_id]
    assert updated.get_json()["data"]["isEndangered"] is True
    assert updated.get_json()["data"]["characteristics"]["maxHeight"] == 20


def test_species_in_use_cannot_be_deleted(client, admin, officer, auth_headers, species_id) -> None:
    _tree(client, auth_headers(officer), species_id)

    resp = client.delete(f"/api/v1/species/{species_id}", headers=auth_headers(admin))

    assert resp.status_code == 409


def test_tree_codes_are_sequential(client, officer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)

    first = _tree(client, headers, species_id)
    second = _tree(client, headers, species_id, tags=["avenue", "avenue", "heritage"])

    assert first["treeCode"] == "TREE-000001"
    assert second["treeCode"] == "TREE-000002"
    assert second["tags"] == ["avenue", "heritage"]
    assert second["createdBy"] == officer.id
    assert second["species"]["commonName"] == "Neem"


def test_tree_validation(client, officer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)

    bad_location = client.post(
        "/api/v1/trees", json={"speciesId": species_id, "location": {"latitude": 95, "longitude": 0}},
        headers=headers,
    )
    unknown_species = client.post(
        "/api/v1/trees", json={"speciesId": "missing", "location": {"latitude": 1, "longitude": 1}},
        headers=headers,
    )

    assert bad_location.status_code == 422
    assert any(e["field"] == "location.latitude" for e in bad_location.get_json()["errors"])
    assert unknown_species.status_code == 422


def test_viewer_cannot_create_tree(client, viewer, auth_headers, species_id) -> None:
    resp = client.post(
        "/api/v1/trees", json={"speciesId": species_id, "location": {"latitude": 1, "longitude": 1}},
        headers=auth_headers(viewer),
    )

    assert resp.status_code == 403


def test_nearby_orders_by_distance(client, officer, viewer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)
    far = _tree(client, headers, species_id, lat=12.9800, lng=77.5946)    # ~930 m north
    near = _tree(client, headers, species_id, lat=12.9720, lng=77.5946)   # ~45 m north
    _tree(client, headers, species_id, lat=13.0500, lng=77.5946)          # ~8.7 km

    resp = client.get(
        "/api/v1/trees/nearby?latitude=12.9716&longitude=77.5946&radius=1000", headers=auth_headers(viewer)
    )

    data = resp.get_json()["data"]
    assert [t["id"] for t in data] == [near["id"], far["id"]]
    assert data[0]["distance"] < data[1]["distance"] <= 1000


def test_nearby_requires_coordinates(client, viewer, auth_headers) -> None:
    resp = client.get("/api/v1/trees/nearby?latitude=12", headers=auth_headers(viewer))

    assert resp.status_code == 400


def test_tags_add_and_remove(client, officer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)
    tree = _tree(client, headers, species_id, tags=["avenue"])

    added = client.post(f"/api/v1/trees/{tree['id']}/tags", json={"tags": ["heritage", "avenue"]}, headers=headers)
    removed = client.delete(f"/api/v1/trees/{tree['id']}/tags/avenue", headers=headers)

    assert added.get_json()["data"]["tags"] == ["avenue", "heritage"]
    assert removed.get_json()["data"]["tags"] == ["heritage"]


def test_search_and_statistics(client, officer, viewer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)
    _tree(client, headers, species_id, height=4.5, tags=["heritage"])
    _tree(client, headers, species_id, height=12, status="dead")

    tall = client.get("/api/v1/trees/search?minHeight=10", headers=auth_headers(viewer)).get_json()
    tagged = client.get("/api/v1/trees/search?q=herit", headers=auth_headers(viewer)).get_json()
    stats = client.get("/api/v1/trees/statistics", headers=auth_headers(viewer)).get_json()["data"]

    assert tall["meta"]["total"] == 1
    assert tagged["data"][0]["tags"] == ["heritage"]
    assert stats["totalTrees"] == 2
    assert stats["healthyTrees"] == 1
    assert stats["deadTrees"] == 1
    assert stats["speciesCount"] == 1
    assert stats["healthPercentage"] == 50.0


def test_health_record_updates_tree(client, officer, admin, viewer, auth_headers, species_id) -> None:
    headers = auth_headers(officer)
    tree = _tree(client, headers, species_id)

    created = client.post(
        "/api/v1/health-records",
        json={
            "treeId": tree["id"],
            "inspectionDate": "2024-05-01T10:00:00Z",
            "status": "pest_infestation",
            "healthScore": 40,
            "pests": [{"name": "aphids", "severity": "moderate"}],
            "followUpRequired": True,
            "followUpDate": "2024-06-01T10:00:00Z",
        },
        headers=headers,
    )
    assert created.status_code == 201
    record = created.get_json()["data"]
    assert record["inspectedBy"] == officer.id

    after = client.get(f"/api/v1/trees/{tree['id']}", headers=auth_headers(viewer)).get_json()["data"]
    assert after["status"] == "diseased"
    assert after["healthScore"] == 40
    assert after["lastInspectionDate"].startswith("2024-05-01T10:00:00")
    assert after["nextInspectionDate"].startswith("2024-06-01T10:00:00")

    client.put(f"/api/v1/health-records/{record['id']}", json={"status": "healthy", "healthScore": 90},
               headers=headers)
    healed = client.get(f"/api/v1/trees/{tree['id']}", headers=auth_headers(viewer)).get_json()["data"]
    assert healed["status"] == "healthy"
    assert healed["healthScore"] == 90

    history = client.get(f"/api/v1/health-records/tree/{tree['id']}", headers=auth_headers(viewer))
    assert len(history.get_json()["data"]) == 1

    assert client.delete(f"/api/v1/health-records/{record['id']}", headers=headers).status_code == 403
    assert client.delete(f"/api/v1/health-records/{record['id']}", headers=auth_headers(admin)).status_code == 200


def test_health_record_for_missing_tree(client, officer, auth_headers) -> None:
    resp = client.post(
        "/api/v1/health-records",
        json={"treeId": "missing", "inspectionDate": "2024-05-01T10:00:00Z", "status": "healthy", "healthScore": 80},
        headers=auth_headers(officer),
    )

    assert resp.status_code == 404


def test_future_inspection_date_is_rejected(client, officer, auth_headers, species_id) -> None:
    tree = _tree(client, auth_headers(officer), species_id)

    resp = client.post(
        "/api/v1/health-records",
        json={"treeId": tree["id"], "inspectionDate": "2999-01-01T00:00:00Z", "status": "healthy", "healthScore": 80},
        headers=auth_headers(officer),
    )

    assert resp.status_code == 422


def test_tree_delete_is_admin_only(client, admin, officer, auth_headers, species_id) -> None:
    tree = _tree(client, auth_headers(officer), species_id)

    assert client.delete(f"/api/v1/trees/{tree['id']}", headers=auth_headers(officer)).status_code == 403
    assert client.delete(f"/api/v1/trees/{tree['id']}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/api/v1/trees/{tree['id']}", headers=auth_headers(admin)).status_code == 404
