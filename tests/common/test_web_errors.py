import pytest
from flask import Flask, jsonify

from src.enterprise_suite.enterprise_suite.common.web import arg_date, id_list, register_error_handlers
from src.enterprise_suite.enterprise_suite.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def _app():
    app = Flask(__name__)
    register_error_handlers(app)
    errors = {
        "validation": ValidationError("Bad input."),
        "authentication": AuthenticationError("Who are you?"),
        "authorization": AuthorizationError("Not yours."),
        "not-found": NotFoundError("Gone."),
        "conflict": ConflictError("Already there."),
    }

    @app.get("/raise/<kind>")
    def raise_error(kind):
        if kind == "boom":
            raise RuntimeError("database on fire")
        raise errors[kind]

    @app.get("/dates")
    def dates():
        start = arg_date("start_date")
        return jsonify({"start": start.isoformat() if start else None})

    return app


@pytest.mark.parametrize(
    "kind, status",
    [("validation", 422), ("authentication", 401), ("authorization", 403), ("not-found", 404), ("conflict", 409)],
)
def test_domain_errors_map_to_json_statuses(kind, status):
    resp = _app().test_client().get(f"/raise/{kind}")
    assert resp.status_code == status
    assert resp.get_json()["success"] is False


def test_unexpected_error_is_logged_and_hidden(caplog):
    resp = _app().test_client().get("/raise/boom")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "An unexpected error occurred."}
    assert "database on fire" not in resp.get_data(as_text=True)
    assert any(r.levelname == "ERROR" and r.exc_info for r in caplog.records)


def test_http_errors_pass_through():
    assert _app().test_client().get("/no-such-page").status_code == 404


def test_malformed_date_argument_is_a_422():
    client = _app().test_client()
    assert client.get("/dates?start_date=2026-03-02").get_json() == {"start": "2026-03-02"}
    assert client.get("/dates").get_json() == {"start": None}

    resp = client.get("/dates?start_date=xx")
    assert resp.status_code == 422
    assert "start date" in resp.get_json()["message"]


def test_id_list_rejects_non_numeric_ids():
    assert id_list("3, 4") == [3, 4]
    assert id_list([1, "2"]) == [1, 2]
    assert id_list(None) == []
    with pytest.raises(ValidationError):
        id_list("3,abc")
    with pytest.raises(ValidationError):
        id_list([None])
