from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from core.errors import resource_not_found
from core.response_envelope import (
    document_response,
    error_payload,
    http_exception_response,
    success_payload,
)


def test_success_payload_includes_request_id():
    payload = success_payload(
        data={"value": 1},
        message="ok",
        request_id="req-123",
    )
    assert payload["success"] is True
    assert payload["data"] == {"value": 1}
    assert payload["requestId"] == "req-123"


def test_success_payload_omits_missing_request_id():
    payload = success_payload(data=[], message="ok")
    assert "requestId" not in payload


def test_error_payload_includes_request_id():
    payload = error_payload(
        message="failed",
        data={"code": "X"},
        request_id="req-999",
    )
    assert payload["success"] is False
    assert payload["data"]["code"] == "X"
    assert payload["requestId"] == "req-999"


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.exception_handler(HTTPException)
    async def _handler(request: Request, exc: HTTPException):
        return http_exception_response(exc=exc, request=request)

    @app.get("/things/{thing_id}")
    @document_response(message="Thing fetched", status_code=200)
    async def _get_thing(request: Request, thing_id: str):
        if thing_id == "missing":
            raise resource_not_found("Thing", thing_id)
        return {"id": thing_id}

    return app


def test_document_response_wraps_result_in_envelope():
    client = TestClient(_build_app())

    response = client.get("/things/t-1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Thing fetched", "data": {"id": "t-1"}}


def test_app_exception_is_rendered_as_error_envelope():
    client = TestClient(_build_app())

    response = client.get("/things/missing")

    assert response.status_code == 404
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Thing not found"
    assert payload["data"]["code"] == "RESOURCE_NOT_FOUND"
    assert payload["data"]["details"] == {"resource": "Thing", "resource_id": "missing"}
