from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from chessgame.protocol.http.app import create_app
from chessgame.protocol.http.error import error_envelope


def test_error_envelope_for_http_exception() -> None:
    app: FastAPI = create_app()

    @app.get("/boom")
    def boom():  # type: ignore[no-redef]
        raise HTTPException(status_code=400, detail="oops")

    client = TestClient(app)
    r = client.get("/boom")
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "bad_request"
    assert err["message"] == "oops"
    assert err["type"] == "client_error"
    assert err["request_id"] == r.headers["x-request-id"]


def test_unhandled_exception_is_500_envelope() -> None:
    app: FastAPI = create_app()

    @app.get("/crash")
    def crash():  # type: ignore[no-redef]
        raise RuntimeError("kaboom")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/crash")
    assert r.status_code == 500
    err = r.json()["error"]
    assert err["code"] == "internal_error"
    assert err["type"] == "server_error"
    assert "kaboom" not in err["message"]


def test_error_envelope_field_errors_only_when_present() -> None:
    plain = error_envelope(code="x", message="m", err_type="client_error", request_id="r")
    assert "field_errors" not in plain["error"]
    fields = [{"field": "body.to", "code": "missing", "message": "Field required"}]
    detailed = error_envelope(
        code="x", message="m", err_type="client_error", request_id="r", field_errors=fields
    )
    assert detailed["error"]["field_errors"] == fields
