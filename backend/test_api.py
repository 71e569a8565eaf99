"""
Tests for the Match Stats API routes.
Run: pytest backend/test_api.py
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


GAME_INFO = {
    "teamId": 7,
    "opponentName": "Riverside FC",
    "matchDate": "2024-01-15",
    "competitionType": "League",
    "isHome": True,
}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-Id" in resp.headers


def test_preview_computes_stats(client):
    payload = {
        **GAME_INFO,
        "rawStats": {
            "Goals For (1st Half)": 2, "Goals For (2nd Half)": 1,
            "Goals Against (2nd Half)": 1,
            "Shots For (1st Half)": 8, "Shots For (2nd Half)": 6,
            "Shots Against (1st Half)": 3, "Shots Against (2nd Half)": 4,
        },
    }
    resp = client.post("/api/matches/preview", json=payload)
    assert resp.status_code == 200
    body = resp.json()
    assert body["gameInfo"]["opponentName"] == "Riverside FC"
    assert body["gameInfo"]["isHome"] is True
    assert body["rawStats"]["goalsFor1stHalf"] == 2
    assert body["rawStats"]["teamId"] == 7
    assert body["computedStats"]["tsr"] == pytest.approx(68.0)
    assert body["allStats"]["goalsFor"] == 3
    assert body["allStats"]["opponentName"] == "Riverside FC"


@pytest.mark.parametrize(
    "payload",
    [
        {"matchDate": "2024-01-15", "rawStats": {}},
        {"opponentName": "Riverside FC", "rawStats": {}},
        {"opponentName": "   ", "matchDate": "2024-01-15", "rawStats": {}},
    ],
)
def test_preview_requires_opponent_and_date(client, payload):
    resp = client.post("/api/matches/preview", json=payload)
    assert resp.status_code == 400
    assert "required" in resp.json()["detail"]


def test_preview_rejects_malformed_raw_stats(client):
    resp = client.post("/api/matches/preview", json={**GAME_INFO, "rawStats": [1, 2]})
    assert resp.status_code == 422


def test_create_computes_from_raw_stats(client):
    payload = {**GAME_INFO, "rawStats": {"passesFor1stHalf": 180, "passesFor2ndHalf": 200, "possessionMins": 47.5}}
    resp = client.post("/api/matches/stats", json=payload)
    assert resp.status_code == 201
    body = resp.json()
    assert body["statsJson"]["ppm"] == pytest.approx(8.0)
    assert body["statsJson"]["passesFor"] == 380
    assert body["statsSource"] == "manual"
    assert body["statsComputedAt"]


def test_create_passes_stats_json_through(client):
    stats = {"tsr": 55.0, "goalsFor": 2}
    payload = {**GAME_INFO, "statsJson": stats, "statsSource": "sheets", "statsComputedAt": "2024-01-16T00:00:00+00:00"}
    resp = client.post("/api/matches/stats", json=payload)
    assert resp.status_code == 201
    assert resp.json() == {
        "statsJson": stats,
        "statsSource": "sheets",
        "statsComputedAt": "2024-01-16T00:00:00+00:00",
    }


def test_update_merges_with_existing(client):
    payload = {
        "existingStatsJson": {"goalsFor": 2, "opponentName": "Riverside FC", "tsr": 50.0},
        "rawStats": {"goalsFor": 0, "shotsFor": 5},
    }
    resp = client.put("/api/matches/stats", json=payload)
    assert resp.status_code == 200
    stats = resp.json()["statsJson"]
    assert stats["goalsFor"] == 2
    assert stats["shotsFor"] == 5
    assert stats["total attempts"] == 7
    assert stats["conversion rate"] == pytest.approx(2 / 7 * 100)
    assert stats["opponentName"] == "Riverside FC"


def test_update_requires_stats(client):
    resp = client.put("/api/matches/stats", json={"existingStatsJson": {"goalsFor": 1}})
    assert resp.status_code == 400


def test_update_echoes_stats_json(client):
    resp = client.put("/api/matches/stats", json={"statsJson": {"goalsFor": 4}})
    assert resp.status_code == 200
    assert resp.json()["statsJson"] == {"goalsFor": 4}
