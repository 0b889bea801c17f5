import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.api.routes import trust as trust_module  # noqa: E402
from src.models.trust.api_models import ScoreRequest  # noqa: E402
from src.models.trust.score_models import TrustGrade  # noqa: E402
from src.models.trust.witness_models import DataPoint, SourceAuthority, TruthWitness  # noqa: E402
from src.services.trust_engine import TrustEngine, get_engine  # noqa: E402


@pytest.fixture
def engine():
    return TrustEngine()


@pytest.fixture
def client(engine):
    app = FastAPI()
    app.include_router(trust_module.router)
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


def score_payload(**extra):
    observed = (datetime.now(timezone.utc) - timedelta(seconds=5)).isoformat()
    payload = {
        "data_point": {
            "value": 42.7,
            "unit": "kW",
            "source_id": "sensor:inverter-3",
            "observed_at": observed,
            "confidence": 92.0,
        },
        "witness": {"source_authority": "sensor", "witnessed_at": observed},
        "claims": [
            {"source_id": "sensor:inverter-4", "value": 42.5, "confidence": 90.0},
            {"source_id": "sensor:meter-1", "value": 42.9, "confidence": 88.0},
        ],
    }
    payload.update(extra)
    return payload


def test_score_returns_trust_score(client):
    response = client.post("/api/trust/score", json=score_payload())
    assert response.status_code == 200
    payload = response.json()

    trust_score = payload["trust_score"]
    assert trust_score["source_id"] == "sensor:inverter-3"
    assert trust_score["freshness_grade"] == "fresh"
    assert trust_score["algorithm"] == "weighted-sum/v1"
    assert 0.0 <= trust_score["composite_score"] <= 100.0
    assert payload["explanation"] is None


def test_score_with_beginner_explanation(client):
    response = client.post("/api/trust/score", json=score_payload(depth="beginner"))
    assert response.status_code == 200

    explanation = response.json()["explanation"]
    assert explanation["depth"] == "beginner"
    assert len(explanation["bullet_points"]) <= 4


def test_malformed_witness_is_rejected(client):
    payload = score_payload()
    payload["witness"] = {"source_authority": "carrier-pigeon", "witnessed_at": "2025-10-02T10:30:15Z"}

    response = client.post("/api/trust/score", json=payload)
    assert response.status_code == 422


def test_explain_existing_score(client):
    trust_score = client.post("/api/trust/score", json=score_payload()).json()["trust_score"]

    response = client.post("/api/trust/explain", json={"trust_score": trust_score, "depth": "expert"})
    assert response.status_code == 200

    explanation = response.json()
    assert explanation["composite_score"] == pytest.approx(trust_score["composite_score"])
    assert "weighted-sum/v1" in explanation["algorithms"]


@pytest.mark.asyncio
async def test_score_handler_direct(engine):
    now = datetime.now(timezone.utc)
    request = ScoreRequest(
        data_point=DataPoint(value=100.0, source_id="onchain:solana", observed_at=now),
        witness=TruthWitness(source_authority=SourceAuthority.ONCHAIN, witnessed_at=now),
    )

    response = await trust_module.score_data_point(request, engine)

    assert response.trust_score.base_confidence == pytest.approx(95.0)
    assert response.trust_score.grade in (TrustGrade.EXCELLENT, TrustGrade.GOOD)
