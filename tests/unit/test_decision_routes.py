import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.api.routes import decisions as decisions_module  # noqa: E402
from src.services.trust_engine import TrustEngine, get_engine  # noqa: E402


@pytest.fixture
def client():
    engine = TrustEngine()
    app = FastAPI()
    app.include_router(decisions_module.router)
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


def propose(client, **extra):
    payload = {
        "agent_id": "agent:grid-optimizer",
        "proposed_action": {
            "action_type": "battery_discharge",
            "metrics": {"battery_soc_percent": 45.0},
            "dependent_systems": ["grid-dispatch"],
        },
        "constraint_ids": ["battery-soc-min"],
    }
    payload.update(extra)
    response = client.post("/api/decisions", json=payload)
    assert response.status_code == 201
    return response.json()


def test_propose_validates_constraints(client):
    body = propose(client)

    assert body["validation"]["all_passed"] is True
    assert body["validation"]["safety_status"] == "safe"
    assert body["decision"]["constraint_checks"][0]["constraint_id"] == "battery-soc-min"


def test_unknown_constraint_is_bad_request(client):
    response = client.post(
        "/api/decisions",
        json={
            "agent_id": "agent:grid-optimizer",
            "proposed_action": {"action_type": "battery_discharge"},
            "constraint_ids": ["no-such-constraint"],
        },
    )
    assert response.status_code == 400


def test_execute_and_reverse(client):
    decision_id = propose(client)["decision"]["decision_id"]

    executed = client.post(f"/api/decisions/{decision_id}/execute")
    assert executed.status_code == 200
    assert executed.json()["executed_at"] is not None
    assert client.post(f"/api/decisions/{decision_id}/execute").status_code == 409

    plan = client.get(f"/api/decisions/{decision_id}/reversal").json()
    assert plan["can_reverse"] is True
    assert plan["complexity"] == "simple"

    reversed_ = client.post(
        f"/api/decisions/{decision_id}/reverse",
        json={"reason": "human_override", "authority": "human:ops-lead", "corrective_actions": ["Resume charging"]},
    )
    assert reversed_.status_code == 201

    record = client.get(f"/api/decisions/{decision_id}").json()
    assert len(record["reversals"]) == 1
    assert record["reversals"][0]["authority"] == "human:ops-lead"


def test_reverse_unexecuted_conflicts(client):
    decision_id = propose(client)["decision"]["decision_id"]

    response = client.post(
        f"/api/decisions/{decision_id}/reverse",
        json={"reason": "error_correction", "authority": "human:ops-lead"},
    )
    assert response.status_code == 409


def test_point_of_no_return_makes_plan_terminal(client):
    decision_id = propose(client)["decision"]["decision_id"]
    client.post(f"/api/decisions/{decision_id}/execute")

    marked = client.post(f"/api/decisions/{decision_id}/point-of-no-return", json={"reason": "Energy delivered"})
    assert marked.status_code == 200
    assert marked.json()["reached"] is True

    plan = client.get(f"/api/decisions/{decision_id}/reversal").json()
    assert plan["can_reverse"] is False
    assert plan["methods"] == ["irreversible"]


def test_outcome_recorded_once(client):
    decision_id = propose(client)["decision"]["decision_id"]
    client.post(f"/api/decisions/{decision_id}/execute")
    body = {"predicted": {"energy_kwh": 100.0}, "actual": {"energy_kwh": 80.0}}

    response = client.post(f"/api/decisions/{decision_id}/outcome", json=body)
    assert response.status_code == 201
    assert response.json()["pending_root_causes"] == ["energy_kwh"]

    assert client.post(f"/api/decisions/{decision_id}/outcome", json=body).status_code == 409
    assert client.get(f"/api/decisions/{decision_id}").json()["outcome"]["decision_id"] == decision_id


def test_unknown_decision(client):
    assert client.get("/api/decisions/decision-missing").status_code == 404
    assert client.post("/api/decisions/decision-missing/execute").status_code == 404
    assert client.post("/api/decisions/decision-missing/outcome", json={}).status_code == 422
