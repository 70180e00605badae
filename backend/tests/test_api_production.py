import base64
import json

import pytest


def _token(sub):
    def segment(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")

    return f"{segment({'alg': 'none'})}.{segment({'sub': sub})}.signature"


@pytest.fixture
def headers(org):
    return {"X-Organization-Id": str(org.id)}


@pytest.fixture
def api_zones(client, headers):
    created = {}
    for stage in ("breeding", "fattening", "slaughter", "curing", "distribution"):
        response = client.post(
            "/api/v1/production/zones",
            json={"name": f"{stage} 1", "stage": stage, "targets": {"temperature": {"min": 2, "max": 6}}},
            headers=headers,
        )
        assert response.status_code == 201
        created[stage] = response.json()
    return created


@pytest.fixture
def lote(client, headers):
    response = client.post(
        "/api/v1/production/lotes",
        json={"identification": "L-2025-01", "initial_animals": 100, "food_regime": "acorn"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def _move(client, headers, lote_id, target, entry_time, **extra):
    return client.post(
        f"/api/v1/production/lotes/{lote_id}/move",
        json={"target": target, "entry_time": entry_time, **extra},
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["status"] == "running"


def test_organization_header_is_required(client):
    assert client.get("/api/v1/production/lotes").status_code == 422


def test_new_lote_is_unassigned(lote):
    assert lote["current_stage"] == "unassigned"
    assert lote["current_zone_id"] is None
    assert lote["status"] == "active"


def test_zone_stage_is_validated(client, headers):
    response = client.post(
        "/api/v1/production/zones", json={"name": "Nowhere", "stage": "finished"}, headers=headers
    )
    assert response.status_code == 422


def test_zone_listing_by_stage_and_soft_delete(client, headers, api_zones):
    response = client.get("/api/v1/production/zones", params={"stage": "curing"}, headers=headers)
    assert [zone["id"] for zone in response.json()] == [api_zones["curing"]["id"]]
    assert response.json()[0]["targets"]["temperature"] == {"min": 2.0, "max": 6.0}

    zone_id = api_zones["curing"]["id"]
    assert client.delete(f"/api/v1/production/zones/{zone_id}", headers=headers).status_code == 204
    assert client.get("/api/v1/production/zones", params={"stage": "curing"}, headers=headers).json() == []
    assert client.get(f"/api/v1/production/zones/{zone_id}", headers=headers).json()["is_active"] is False


def test_move_sequence(client, headers, api_zones, lote):
    response = _move(client, headers, lote["id"], api_zones["breeding"]["id"], "2025-01-01T00:00:00Z")
    assert response.status_code == 200
    assert response.json()["stage"] == "breeding"
    assert response.json()["message"] == "Lote moved to breeding"

    response = _move(client, headers, lote["id"], api_zones["breeding"]["id"], "2025-01-05T00:00:00Z")
    assert response.status_code == 400

    response = _move(client, headers, lote["id"], api_zones["fattening"]["id"], "2024-12-31T00:00:00Z")
    assert response.status_code == 400

    response = _move(client, headers, lote["id"], api_zones["fattening"]["id"], "2025-01-05T00:00:00Z")
    assert response.status_code == 200

    detail = client.get(f"/api/v1/production/lotes/{lote['id']}", headers=headers).json()
    assert detail["current_stage"] == "fattening"
    assert detail["current_zone_id"] == api_zones["fattening"]["id"]

    stays = client.get(f"/api/v1/production/lotes/{lote['id']}/stays", headers=headers).json()
    assert [s["exit_time"] for s in stays] == ["2025-01-05T00:00:00", None]


def test_move_to_unknown_zone_or_foreign_lote(client, headers, other_org, api_zones, lote):
    assert _move(client, headers, lote["id"], 9999, "2025-01-01T00:00:00Z").status_code == 404

    foreign = {"X-Organization-Id": str(other_org.id)}
    response = _move(client, foreign, lote["id"], api_zones["breeding"]["id"], "2025-01-01T00:00:00Z")
    assert response.status_code == 404


def test_split_through_api(client, headers, api_zones, lote):
    _move(client, headers, lote["id"], api_zones["slaughter"]["id"], "2025-01-01T00:00:00Z")

    response = _move(
        client,
        headers,
        lote["id"],
        api_zones["curing"]["id"],
        "2025-01-02T00:00:00Z",
        sub_lotes=[
            {"identification": "C1", "quantity": 60, "piece_type": "ham"},
            {"identification": "C2", "quantity": 40, "piece_type": "shoulder"},
        ],
    )

    body = response.json()
    assert response.status_code == 200
    assert body["lote_status"] == "finished"
    assert [(s["identification"], s["initial_animals"]) for s in body["sub_lotes"]] == [("C1", 60), ("C2", 40)]

    children = client.get(f"/api/v1/production/lotes/{lote['id']}/sub-lotes", headers=headers).json()
    assert {child["parent_lote_id"] for child in children} == {lote["id"]}

    child = client.get(f"/api/v1/production/lotes/{children[0]['id']}", headers=headers).json()
    assert child["current_stage"] == "curing"


def test_duplicate_sub_lote_names_rejected(client, headers, api_zones, lote):
    response = _move(
        client,
        headers,
        lote["id"],
        api_zones["curing"]["id"],
        "2025-01-02T00:00:00Z",
        sub_lotes=[{"identification": "C1", "quantity": 1}, {"identification": "c1", "quantity": 2}],
    )
    assert response.status_code == 422


def test_finish_and_consistency(client, headers, api_zones, lote):
    _move(client, headers, lote["id"], api_zones["breeding"]["id"], "2025-01-01T00:00:00Z")

    response = _move(client, headers, lote["id"], "finished", "2025-02-01T00:00:00Z")
    assert response.status_code == 200
    assert response.json()["message"] == "Lote finished"

    report = client.get("/api/v1/production/consistency", headers=headers).json()
    assert report == {"checked_lotes": 1, "violations": []}


def test_audit_uses_bearer_subject(client, headers, api_zones, lote):
    user_headers = {**headers, "Authorization": f"Bearer {_token('user-42')}"}
    _move(client, user_headers, lote["id"], api_zones["breeding"]["id"], "2025-01-01T00:00:00Z")

    entries = client.get(f"/api/v1/production/lotes/{lote['id']}/audit", headers=headers).json()

    assert [e["action"] for e in entries] == ["create", "stay_open"]
    assert entries[0]["actor_type"] == "system"
    assert entries[1]["actor_type"] == "user"
    assert entries[1]["actor_id"] == "user-42"


def test_malformed_bearer_token_is_rejected(client, headers):
    response = client.get(
        "/api/v1/production/lotes", headers={**headers, "Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.parametrize("target", [True, "1", 1.5, "breeding"])
def test_malformed_move_target_is_rejected(client, headers, api_zones, lote, target):
    response = _move(client, headers, lote["id"], target, "2025-01-01T00:00:00Z")
    assert response.status_code == 422

    detail = client.get(f"/api/v1/production/lotes/{lote['id']}", headers=headers).json()
    assert detail["current_stage"] == "unassigned"
