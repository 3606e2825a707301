"""Bearer verification and role gates on protected routes."""
from datetime import datetime, timedelta, timezone

import pytest
from flask import Blueprint

from helpers import bearer, login
from models.user import ROLE_VALUES, UserRole
from utils.decorators import current_identity, jwt_required, roles_required
from utils.security import Signer


def _token(client, email):
    return login(client, email=email).get_json()["data"]["access_token"]


def test_driver_route_rejects_admin_token(client, users):
    resp = client.get("/api/v1/driver/whoami", headers=bearer(_token(client, "admin@luxsuv.test")))
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "FORBIDDEN"


def test_driver_route_runs_handler_for_driver(client, users):
    resp = client.get("/api/v1/driver/whoami", headers=bearer(_token(client, "driver@luxsuv.test")))
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {
        "user_id": users["driver"],
        "role": "driver",
        "token_id": resp.get_json()["data"]["token_id"],
    }


def test_admin_route(client, users):
    admin = client.get("/api/v1/admin/whoami", headers=bearer(_token(client, "admin@luxsuv.test")))
    rider = client.get("/api/v1/admin/whoami", headers=bearer(_token(client, "a@b.com")))
    assert admin.status_code == 200
    assert rider.status_code == 403


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "Bearer"},
        {"Authorization": "Bearer not.a.token"},
    ],
)
def test_missing_or_malformed_bearer_is_401(client, headers):
    resp = client.get("/api/v1/driver/whoami", headers=headers)
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_bearer_scheme_is_case_insensitive(client, users):
    token = _token(client, "driver@luxsuv.test")
    resp = client.get("/api/v1/driver/whoami", headers={"Authorization": f"bearer {token}"})
    assert resp.status_code == 200


def test_refresh_cookie_is_not_an_access_credential(client, users):
    resp = login(client, email="driver@luxsuv.test")
    token = resp.get_json()["data"]["access_token"]
    cookie_only = client.get("/api/v1/driver/whoami", headers={"Cookie": f"refresh_token={token}"})
    assert cookie_only.status_code == 401


def test_expired_token_is_401(app, client, users):
    config = dict(app.config)
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    stale = Signer(
        access_secret=config["JWT_ACCESS_SECRET"],
        refresh_secret=config["JWT_REFRESH_SECRET"],
        issuer=config["JWT_ISSUER"],
        audience=config["JWT_AUDIENCE"],
        access_ttl=config["ACCESS_TOKEN_TTL"],
        roles=ROLE_VALUES,
        clock=lambda: past,
    )
    token, _ = stale.mint_access(users["driver"], "driver")
    resp = client.get("/api/v1/driver/whoami", headers=bearer(token))
    assert resp.status_code == 401


def test_handler_does_not_run_when_rejected(app, client):
    calls = []
    bp = Blueprint("probe", __name__)

    @bp.get("/probe")
    @jwt_required()
    @roles_required(UserRole.ADMIN)
    def probe():
        calls.append(current_identity())
        return {"ok": True}

    app.register_blueprint(bp, url_prefix="/api/v1/test")
    resp = client.get("/api/v1/test/probe", headers=bearer("garbage"))
    assert resp.status_code == 401
    assert calls == []


def test_role_gate_without_identity_is_401(app, client):
    bp = Blueprint("misordered", __name__)

    @bp.get("/misordered")
    @roles_required(UserRole.ADMIN)
    def misordered():
        return {"ok": True}

    app.register_blueprint(bp, url_prefix="/api/v1/test")
    resp = client.get("/api/v1/test/misordered")
    assert resp.status_code == 401


def test_identity_does_not_leak_between_requests(client, users):
    token = _token(client, "driver@luxsuv.test")
    assert client.get("/api/v1/driver/whoami", headers=bearer(token)).status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 401
