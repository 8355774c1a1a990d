"""Tests for the POST /api/valuation/* endpoints."""
import threading

import pytest
from fastapi.testclient import TestClient

from stochval.api.routes import valuation as valuation_route
from stochval.config import settings
from stochval.exceptions import SimulationCancelled
from stochval.main import app

client = TestClient(app)

_ASSUMPTIONS = {
    "revenue_growth": {"type": "normal", "mean": 10.0, "std": 2.0},
    "ebitda_margin": {"type": "triangular", "mean": 20.0, "min": 15.0, "max": 25.0},
    "capex_to_revenue": {"type": "uniform", "mean": 5.0},
    "nwc_to_revenue_delta": {"type": "normal", "mean": 2.0, "std": 0.5},
    "wacc": {"type": "triangular", "mean": 10.0},
    "terminal_growth": {"type": "uniform", "mean": 2.0, "min": 1.0, "max": 3.0},
}

_SAMPLE_REQUEST = {
    "base_year_revenue": 1000.0,
    "base_year_fcf": 100.0,
    "net_debt": 200.0,
    "shares_outstanding": 100.0,
    "forecast_years": 5,
    "n_scenarios": 500,
    "seed": 42,
    "assumptions": _ASSUMPTIONS,
}


def test_simulate_returns_200():
    response = client.post("/api/valuation/simulate", json=_SAMPLE_REQUEST)
    assert response.status_code == 200


def test_simulate_response_structure():
    response = client.post("/api/valuation/simulate", json=_SAMPLE_REQUEST)
    data = response.json()["result"]
    assert data["n_scenarios"] == 500
    for key in ("enterprise_value", "equity_value", "per_share_value"):
        for stat in ("mean", "median", "std", "p5", "p10", "p25", "p50", "p75", "p90", "p95"):
            assert stat in data[key]
    assert 0.0 < data["terminal_value_pct"] < 1.0
    assert sum(b["count"] for b in data["histogram"]) == 500
    assert len(data["scenarios_sample"]) == 100
    assert data["seed"] == 42
    assert "base_case" in data


def test_simulate_accepts_family_key():
    assumptions = {
        name: {**param, "family": param["type"]} for name, param in _ASSUMPTIONS.items()
    }
    for param in assumptions.values():
        del param["type"]
    response = client.post(
        "/api/valuation/simulate", json={**_SAMPLE_REQUEST, "assumptions": assumptions},
    )
    assert response.status_code == 200


def test_missing_revenue_returns_400():
    body = {k: v for k, v in _SAMPLE_REQUEST.items() if k != "base_year_revenue"}
    response = client.post("/api/valuation/simulate", json=body)
    assert response.status_code == 400
    assert "required" in response.json()["detail"]


def test_zero_shares_returns_400():
    response = client.post(
        "/api/valuation/simulate", json={**_SAMPLE_REQUEST, "shares_outstanding": 0},
    )
    assert response.status_code == 400


def test_degenerate_rates_return_400():
    assumptions = {
        **_ASSUMPTIONS,
        "wacc": {"type": "normal", "mean": 2.0, "std": 0.0},
        "terminal_growth": {"type": "normal", "mean": 2.0, "std": 0.0},
    }
    response = client.post(
        "/api/valuation/simulate", json={**_SAMPLE_REQUEST, "assumptions": assumptions},
    )
    assert response.status_code == 400


def test_too_many_scenarios_returns_400():
    response = client.post(
        "/api/valuation/simulate", json={**_SAMPLE_REQUEST, "n_scenarios": 10_000_000},
    )
    assert response.status_code == 400


def test_unexpected_failure_returns_generic_500(monkeypatch):
    def boom(request, cancel_event=None):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(valuation_route, "run_simulation", boom)
    response = client.post("/api/valuation/simulate", json=_SAMPLE_REQUEST)
    assert response.status_code == 500
    assert response.json()["detail"] == "Simulation failed"


def test_missing_assumptions_returns_422():
    body = {k: v for k, v in _SAMPLE_REQUEST.items() if k != "assumptions"}
    response = client.post("/api/valuation/simulate", json=body)
    assert response.status_code == 422


def test_no_body_returns_422():
    response = client.post("/api/valuation/simulate")
    assert response.status_code == 422


def test_base_case_endpoint():
    response = client.post("/api/valuation/base-case", json=_SAMPLE_REQUEST)
    assert response.status_code == 200
    data = response.json()
    assert data["per_share_value"] >= 0
    assert data["equity_value"] == pytest.approx(data["per_share_value"] * 100)


def test_base_case_missing_shares_returns_400():
    body = {k: v for k, v in _SAMPLE_REQUEST.items() if k != "shares_outstanding"}
    response = client.post("/api/valuation/base-case", json=body)
    assert response.status_code == 400


def test_wacc_at_minus_100_percent_returns_400():
    assumptions = {
        **_ASSUMPTIONS,
        "wacc": {"type": "normal", "mean": -100.0, "std": 0.0},
        "terminal_growth": {"type": "normal", "mean": -150.0, "std": 0.0},
    }
    response = client.post(
        "/api/valuation/simulate", json={**_SAMPLE_REQUEST, "assumptions": assumptions},
    )
    assert response.status_code == 400
    assert "wacc" in response.json()["detail"]


def test_timed_out_simulation_returns_503(monkeypatch):
    def slow_run(request, cancel_event=None):
        assert isinstance(cancel_event, threading.Event)
        if cancel_event.wait(timeout=5):
            raise SimulationCancelled("Simulation cancelled")
        raise AssertionError("timeout never fired")

    monkeypatch.setattr(settings, "SIMULATION_TIMEOUT_SECONDS", 0.01)
    monkeypatch.setattr(valuation_route, "run_simulation", slow_run)
    response = client.post("/api/valuation/simulate", json=_SAMPLE_REQUEST)
    assert response.status_code == 503
    assert response.json()["detail"] == "Simulation cancelled"


def test_no_timeout_by_default_passes_unset_event(monkeypatch):
    seen = {}

    def fake_run(request, cancel_event=None):
        seen["cancelled"] = cancel_event.is_set()
        raise SimulationCancelled("Simulation cancelled")

    monkeypatch.setattr(settings, "SIMULATION_TIMEOUT_SECONDS", None)
    monkeypatch.setattr(valuation_route, "run_simulation", fake_run)
    assert client.post("/api/valuation/simulate", json=_SAMPLE_REQUEST).status_code == 503
    assert seen["cancelled"] is False
