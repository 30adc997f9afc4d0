import logging

import pytest
from conftest import GENERIC_ERROR_BODY, LOCAL_ORIGIN, build_test_app, build_test_config
from fastapi import APIRouter, HTTPException
from fastapi.testclient import TestClient

from course_api.routes import ROUTE_GROUP_NAMES

EVIL_ORIGIN = "http://evil.example"


def _tagged_route_groups() -> dict[str, APIRouter]:
    groups = {}
    for name in ROUTE_GROUP_NAMES:
        router = APIRouter()

        def _bind(group_name: str) -> None:
            @router.api_route("/{rest:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
            async def handle(rest: str):
                return {"group": group_name, "rest": rest}

        _bind(name)
        groups[name] = router
    return groups


@pytest.fixture(scope="module")
def routed_app():
    api = build_test_app(route_groups=_tagged_route_groups())

    @api.get("/api/v1/course-admin/boom")
    async def boom():
        raise RuntimeError("database password leaked in message")

    @api.get("/api/v1/course-admin/missing")
    async def missing():
        raise HTTPException(status_code=404, detail="Course not found")

    return api


@pytest.fixture
def routed_client(routed_app):
    with TestClient(routed_app) as tc:
        yield tc


def test_dev_endpoint_returns_owner_identity(client):
    response = client.get("/api/v1/dev")
    assert response.status_code == 200
    assert response.json() == {"created_by": "Course Team"}


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
def test_dev_endpoint_answers_any_method_without_auth(client, method):
    response = client.request(method, "/api/v1/dev", headers={"Authorization": "Bearer bogus"})
    assert response.status_code == 200
    assert response.json() == {"created_by": "Course Team"}


def test_dev_endpoint_answers_sub_paths(client):
    response = client.get("/api/v1/dev/ping")
    assert response.status_code == 200
    assert response.json() == {"created_by": "Course Team"}


@pytest.mark.parametrize("group", ROUTE_GROUP_NAMES)
def test_prefix_dispatch_reaches_only_matching_group(routed_client, group):
    response = routed_client.get(f"/api/v1/{group}/items/42")
    assert response.status_code == 200
    assert response.json() == {"group": group, "rest": "items/42"}


def test_similar_prefix_does_not_reach_course_group(routed_client):
    response = routed_client.get("/api/v1/courses/1")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}


def test_route_groups_are_mounted_in_declared_order(routed_app):
    prefixes = []
    for route in routed_app.router.routes:
        path = getattr(route, "path", "")
        for name in ROUTE_GROUP_NAMES:
            prefix = f"/api/v1/{name}/"
            if path.startswith(prefix) and prefix not in prefixes:
                prefixes.append(prefix)
    assert prefixes == [f"/api/v1/{name}/" for name in ("media", "user", "course", "purchase", "progress")]


def test_disallowed_origin_gets_generic_error(routed_client, caplog):
    caplog.set_level(logging.WARNING)
    response = routed_client.get("/api/v1/course/1", headers={"Origin": EVIL_ORIGIN})

    assert response.status_code == 500
    assert response.json() == GENERIC_ERROR_BODY
    assert "access-control-allow-origin" not in response.headers
    blocked = [r for r in caplog.records if r.getMessage() == "cors_origin_blocked"]
    assert blocked and blocked[0].origin == EVIL_ORIGIN


def test_disallowed_origin_preflight_gets_generic_error(routed_client):
    response = routed_client.options(
        "/api/v1/course/1",
        headers={"Origin": EVIL_ORIGIN, "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 500
    assert response.json() == GENERIC_ERROR_BODY


def test_allowed_origin_reaches_route_with_credentials(routed_client):
    response = routed_client.get("/api/v1/course/1", headers={"Origin": LOCAL_ORIGIN})

    assert response.status_code == 200
    assert response.json() == {"group": "course", "rest": "1"}
    assert response.headers["access-control-allow-origin"] == LOCAL_ORIGIN
    assert response.headers["access-control-allow-credentials"] == "true"


def test_allowed_origin_preflight_lists_methods_and_headers(routed_client):
    response = routed_client.options(
        "/api/v1/progress/7",
        headers={
            "Origin": LOCAL_ORIGIN,
            "Access-Control-Request-Method": "PATCH",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == LOCAL_ORIGIN
    assert response.headers["access-control-allow-credentials"] == "true"
    allowed_methods = {m.strip() for m in response.headers["access-control-allow-methods"].split(",")}
    assert {"GET", "POST", "PUT", "DELETE", "PATCH"} <= allowed_methods


def test_request_without_origin_is_served(routed_client):
    response = routed_client.get("/api/v1/user/me")
    assert response.status_code == 200
    assert response.json() == {"group": "user", "rest": "me"}


def test_unhandled_route_error_is_masked_and_logged(routed_client, caplog):
    caplog.set_level(logging.ERROR)
    response = routed_client.get("/api/v1/course-admin/boom")

    assert response.status_code == 500
    assert response.json() == GENERIC_ERROR_BODY
    assert "password" not in response.text
    assert response.headers.get("X-Request-Id")
    logged = [r for r in caplog.records if r.getMessage() == "unhandled_exception"]
    assert logged and logged[0].exc_info is not None


def test_unhandled_route_error_keeps_cors_headers_for_allowed_origin(routed_client):
    response = routed_client.get("/api/v1/course-admin/boom", headers={"Origin": LOCAL_ORIGIN})

    assert response.status_code == 500
    assert response.json() == GENERIC_ERROR_BODY
    assert response.headers.get("access-control-allow-origin") == LOCAL_ORIGIN
    assert response.headers.get("access-control-allow-credentials") == "true"
    assert response.headers.get("X-Request-Id")


def test_http_errors_use_failure_shape(routed_client):
    response = routed_client.get("/api/v1/course-admin/missing")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Course not found"}


def test_request_id_is_echoed(client):
    response = client.get("/api/v1/dev", headers={"X-Request-Id": "req-123"})
    assert response.headers["X-Request-Id"] == "req-123"


def test_oversized_body_is_rejected_before_route():
    api = build_test_app(build_test_config(MAX_REQUEST_BODY_BYTES=64), route_groups=_tagged_route_groups())

    with TestClient(api) as tc:
        response = tc.post(
            "/api/v1/media/upload",
            content='{"payload":"' + ("x" * 200) + '"}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 413
        assert response.json() == {"success": False, "message": "Payload Too Large"}

        invalid = tc.post(
            "/api/v1/media/upload",
            content='{"payload":"x"}',
            headers={"Content-Type": "application/json", "Content-Length": "-1"},
        )
        assert invalid.status_code == 400
        assert invalid.json()["message"] == "Invalid Content-Length header"


def test_unknown_route_group_is_rejected():
    groups = _tagged_route_groups()
    groups["billing"] = APIRouter()
    with pytest.raises(RuntimeError, match="Unknown route groups: billing"):
        build_test_app(route_groups=groups)


def test_missing_route_group_is_rejected():
    groups = _tagged_route_groups()
    del groups["purchase"]
    with pytest.raises(RuntimeError, match="Missing route groups: purchase"):
        build_test_app(route_groups=groups)
