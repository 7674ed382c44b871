"""HTTP routes for the Flask API."""

import json
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from cdladder.core.defaults import default_request
from cdladder.core.projection import (
    calculate_projections,
    compare_scenarios,
    describe_validation_error,
)
from cdladder.core.rates import list_scenarios
from cdladder.schemas.projection import (
    CompareRequest,
    ProjectionRequest,
    ProjectionResult,
)

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into a fatal projection result."""
    body = ProjectionResult(error=describe_validation_error(exc)).model_dump(mode="json")
    body["detail"] = json.loads(exc.json())
    return jsonify(body), HTTPStatus.BAD_REQUEST


@api_bp.get("/health")
def health() -> Any:
    """Health-check endpoint."""
    return jsonify({"status": "ok"})


@api_bp.get("/defaults")
def defaults() -> Any:
    """Starter inputs for the projection form."""
    return jsonify(default_request().model_dump(mode="json"))


@api_bp.get("/scenarios")
def scenarios() -> Any:
    """Baseline plus the built-in rate scenarios, for the scenario picker."""
    return jsonify([summary.model_dump() for summary in list_scenarios()])


@api_bp.post("/projection")
def projection() -> Any:
    """Project one allocation under one rate scenario."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ProjectionRequest.model_validate(raw_payload)
    result = calculate_projections(payload)
    status = HTTPStatus.BAD_REQUEST if result.error else HTTPStatus.OK
    return jsonify(result.model_dump(mode="json")), status


@api_bp.post("/projection/compare")
def projection_compare() -> Any:
    """Project the same allocation under several scenarios, keyed by scenario id."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = CompareRequest.model_validate(raw_payload)
    results = compare_scenarios(payload, payload.scenarioIds)
    return jsonify({scenario_id: result.model_dump(mode="json") for scenario_id, result in results.items()})
