from flask import Flask, g

from src.enterprise_suite.enterprise_suite.core.enums import Role
from src.enterprise_suite.enterprise_suite.modules.middleware import EXTENSION_KEY, module_required
from src.enterprise_suite.enterprise_suite.modules.service import ModulePermissionService
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.modules.registry_fakes import FakeRegistryRepo


def _app(subscribed=None):
    app = Flask(__name__)
    app.secret_key = "test"
    app.extensions[EXTENSION_KEY] = ModulePermissionService(FakeRegistryRepo(), ttl_seconds=60)

    @app.before_request
    def _subscriptions():
        if subscribed is not None:
            g.subscribed_modules = subscribed

    @app.get("/hrm")
    @module_required("hrm")
    def hrm():
        return {"ok": True}

    @app.get("/approve")
    @module_required("hrm", "leaves", "leave-approve")
    def approve():
        return {"ok": True}

    return app


def _login(client, *perms):
    user = SessionUser(user_id=5, name="U", email="u@example.com", role=Role.EMPLOYEE, permissions=frozenset(perms))
    with client.session_transaction() as sess:
        sess["user"] = user.to_session()


def test_anonymous_gets_401():
    client = _app().test_client()
    assert client.get("/hrm").status_code == 401


def test_allowed_and_denied_module():
    client = _app().test_client()
    _login(client, "hrm.view")
    assert client.get("/hrm").status_code == 200

    client = _app().test_client()
    _login(client, "nothing")
    resp = client.get("/hrm")
    assert resp.status_code == 403
    assert resp.get_json()["access_type"] == "module"


def test_component_denial_reports_path():
    client = _app().test_client()
    _login(client, "leaves.view")
    resp = client.get("/approve")
    assert resp.status_code == 403
    assert resp.get_json()["access_path"] == "hrm/leaves/leave-approve"


def test_unsubscribed_module_is_denied():
    client = _app(subscribed=["core"]).test_client()
    _login(client, "hrm.view")
    assert client.get("/hrm").status_code == 403
