from __future__ import annotations

from flask.testing import FlaskClient


def projection_payload() -> dict:
    return {
        "investmentStartDate": "2025-01-01",
        "totalAmount": 60000,
        "taxRate": 22,
        "allocations": [
            {"amount": 20000, "term": "6m", "reinvestmentOption": "newDeposit", "reinvestmentTerm": "12m"},
            {"amount": 20000, "term": "24m", "reinvestmentOption": "moveToLiquid"},
            {"amount": 20000, "term": "HYSA"},
        ],
        "withdrawals": [{"date": "2026-06-30", "amount": 15000}],
        "interestRates": {
            "HYSA": {"apy": 3.6, "duration": None},
            "6m": {"apy": 3.8, "duration": 6},
            "12m": {"apy": 4.0, "duration": 12},
            "24m": {"apy": 3.5, "duration": 24},
        },
    }


def test_health_returns_ok(client: FlaskClient):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json == {"status": "ok"}


def test_scenarios_lists_baseline_first(client: FlaskClient):
    response = client.get("/api/scenarios")

    assert response.status_code == 200
    ids = [item["id"] for item in response.json]
    assert ids == ["ratesStayHigh", "ratesFallModerately", "ratesFallSignificantly"]
    assert all(item["label"] for item in response.json)


def test_defaults_can_be_posted_back(client: FlaskClient):
    defaults = client.get("/api/defaults").json
    assert defaults["totalAmount"] == 100000
    assert defaults["interestRates"]["HYSA"]["duration"] is None

    response = client.post("/api/projection", json=defaults)
    assert response.status_code == 200
    assert response.json["error"] is None


def test_projection_endpoint_returns_years_and_totals(client: FlaskClient):
    response = client.post("/api/projection", json=projection_payload())

    assert response.status_code == 200
    body = response.json
    assert body["error"] is None
    assert body["scenario"] == "ratesStayHigh"
    assert body["years"][0]["year"] == 2025
    assert body["years"][-1]["year"] == 2032
    assert body["totals"]["finalPortfolioValue"] == body["years"][-1]["totalPortfolioValue"]
    assert body["nextReinvestSequence"] == 1


def test_invalid_payload_returns_400(client: FlaskClient):
    response = client.post("/api/projection", json={"totalAmount": -5})

    assert response.status_code == 400
    body = response.json
    assert "detail" in body
    assert body["years"] == []
    assert body["error"].startswith("Missing or invalid required inputs")


def test_unknown_term_returns_400_with_error(client: FlaskClient):
    payload = projection_payload()
    payload["allocations"][0]["term"] = "9m"

    response = client.post("/api/projection", json=payload)
    assert response.status_code == 400
    assert response.json["years"] == []
    assert response.json["error"] == "Missing or invalid rate data for term: 9m"


def test_warnings_are_returned_with_a_200(client: FlaskClient):
    payload = projection_payload()
    payload["withdrawals"].append({"date": "someday", "amount": 100})

    response = client.post("/api/projection", json=payload)
    assert response.status_code == 200
    assert [w["code"] for w in response.json["warnings"]] == ["invalidWithdrawalDate"]


def test_compare_returns_one_result_per_scenario(client: FlaskClient):
    response = client.post("/api/projection/compare", json=projection_payload())

    assert response.status_code == 200
    body = response.json
    assert set(body) == {"ratesStayHigh", "ratesFallModerately", "ratesFallSignificantly"}
    baseline = body["ratesStayHigh"]["totals"]["totalInterestEarned"]
    assert body["ratesFallSignificantly"]["totals"]["totalInterestEarned"] < baseline


def test_compare_honours_requested_ids(client: FlaskClient):
    payload = projection_payload()
    payload["scenarioIds"] = ["ratesFallModerately"]

    response = client.post("/api/projection/compare", json=payload)
    assert response.status_code == 200
    assert set(response.json) == {"ratesFallModerately"}


def test_cors_allows_the_dev_frontend(client: FlaskClient):
    response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})

    assert response.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"


def test_overlong_term_returns_400_not_500(client: FlaskClient):
    payload = projection_payload()
    payload["interestRates"]["long"] = {"apy": 1.0, "duration": 120000}
    payload["allocations"] = [{"amount": 1000, "term": "long"}]
    payload["totalAmount"] = 1000

    response = client.post("/api/projection", json=payload)
    assert response.status_code == 400
    assert response.json["years"] == []
    assert "out of range" in response.json["error"]
