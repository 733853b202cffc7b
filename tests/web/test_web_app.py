"""
tests/web/test_web_app.py - Flask HTTP 계층 테스트

서비스는 MagicMock으로 대체하고 라우팅, 응답 본문, 에러 → 상태 코드 매핑을 검증합니다.
"""

from unittest.mock import MagicMock

import pytest

from core.auth.types import Account
from core.exceptions import (
    AccessDeniedError,
    AccountNotFoundError,
    APICallError,
    ConflictError,
    NotFoundError,
    PartialFailureError,
    SessionError,
    ThrottledError,
    ValidationError,
)
from core.services.types import PasswordRotation, UserCleanupResult
from web.app import create_app, status_for

A = "111111111111"


@pytest.fixture
def client(app_context):
    app = create_app(app_context)
    app.config["TESTING"] = True
    return app.test_client()


class TestHealth:
    """헬스 체크 테스트"""

    @pytest.mark.parametrize("path,status", [("/ping", "ok"), ("/health", "healthy"), ("/ready", "ready")])
    def test_health_paths(self, client, path, status):
        response = client.get(path)

        assert response.status_code == 200
        assert response.get_json() == {"status": status}

    def test_cors_headers(self, client):
        response = client.get("/ping", headers={"Origin": "http://dashboard.local"})

        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/accounts/111111111111/users/alice",
            headers={"Origin": "http://dashboard.local", "Access-Control-Request-Method": "DELETE"},
        )

        assert response.status_code == 200
        assert "DELETE" in response.headers["Access-Control-Allow-Methods"]

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert "error" in response.get_json()


class TestListing:
    """조회 엔드포인트 테스트"""

    def test_accounts_from_cache(self, client, app_context, seed_accounts):
        seed_accounts(app_context, Account(A, "prod", True), Account("222222222222", "sandbox", False))

        response = client.get("/api/accounts")

        assert response.status_code == 200
        assert response.get_json() == [
            {"id": A, "name": "prod", "accessible": True},
            {"id": "222222222222", "name": "sandbox", "accessible": False},
        ]

    def test_user_list_uses_camel_case_account_fields(self, client, app_context):
        from core.services.types import UserWithAccount

        app_context.cache.set(
            "all-users",
            [UserWithAccount(username="alice", user_id="AID", arn="arn", account_id=A, account_name="prod")],
        )

        [user] = client.get("/api/users").get_json()

        assert user["username"] == "alice"
        assert (user["accountId"], user["accountName"]) == (A, "prod")

    def test_empty_list(self, client, app_context):
        app_context.cache.set("public-ips", [])

        assert client.get("/api/public-ips").get_json() == []


class TestErrorMapping:
    """예외 → HTTP 상태 코드 테스트"""

    @pytest.mark.parametrize(
        "error,status",
        [
            (ValidationError("days", "x", "positive integer"), 400),
            (AccessDeniedError(service="iam", operation="get_user", error_code="AccessDenied"), 403),
            (SessionError(A, "denied"), 403),
            (NotFoundError(service="iam", operation="get_user", error_code="NoSuchEntity"), 404),
            (AccountNotFoundError(A), 404),
            (ConflictError("sg-1", "in use"), 409),
            (ThrottledError(service="ec2", operation="describe_vpcs", error_code="Throttling"), 429),
            (APICallError(service="ec2", operation="describe_vpcs", error_code="InternalError"), 500),
        ],
    )
    def test_status(self, client, app_context, error, status):
        app_context.users = MagicMock()
        app_context.users.get_user.side_effect = error

        response = client.get(f"/api/accounts/{A}/users/alice")

        assert response.status_code == status
        assert status_for(error) == status
        body = response.get_json()
        assert body["error"] == str(error)
        assert isinstance(body["details"], dict)

    def test_unexpected_error_is_500(self, client, app_context):
        app_context.roles = MagicMock()
        app_context.roles.list_all_roles.side_effect = RuntimeError("boom")

        response = client.get("/api/roles")

        assert response.status_code == 500
        assert response.get_json() == {"error": "boom", "details": {}}

    def test_invalid_int_query(self, client):
        response = client.post(f"/api/accounts/{A}/snapshots/delete-old?older_than_months=abc")

        assert response.status_code == 400
        assert response.get_json()["details"]["field"] == "older_than_months"


class TestMutations:
    """쓰기 엔드포인트 테스트"""

    def test_delete_old_snapshots_default_months(self, client, app_context):
        app_context.snapshots = MagicMock()
        app_context.snapshots.delete_old_snapshots.return_value = ["snap-1", "snap-2"]

        response = client.post(f"/api/accounts/{A}/snapshots/delete-old")

        app_context.snapshots.delete_old_snapshots.assert_called_once_with(A, 6)
        assert response.status_code == 200
        body = response.get_json()
        assert body["deleted_snapshots"] == ["snap-1", "snap-2"]
        assert body["count"] == 2
        assert "older than 6 months" in body["message"]

    def test_delete_old_snapshots_partial(self, client, app_context):
        app_context.snapshots = MagicMock()
        app_context.snapshots.delete_old_snapshots.side_effect = PartialFailureError(
            "deleted 1 snapshots, but encountered 1 errors",
            succeeded=["snap-1"],
            errors={"snap-2": "InvalidSnapshot.InUse"},
        )

        response = client.post(f"/api/accounts/{A}/snapshots/delete-old?older_than_months=12")

        assert response.status_code == 206
        body = response.get_json()
        assert body["deleted_snapshots"] == ["snap-1"]
        assert body["details"]["errors"] == {"snap-2": "InvalidSnapshot.InUse"}

    def test_delete_old_snapshots_total_failure(self, client, app_context):
        app_context.snapshots = MagicMock()
        app_context.snapshots.delete_old_snapshots.side_effect = PartialFailureError(
            "deleted 0 snapshots, but encountered 1 errors", succeeded=[], errors={"snap-2": "x"}
        )

        response = client.post(f"/api/accounts/{A}/snapshots/delete-old")

        assert response.status_code == 500

    def test_delete_inactive_users(self, client, app_context):
        app_context.users = MagicMock()
        app_context.users.delete_inactive_users.return_value = UserCleanupResult(
            deleted=["stale"], failed={"broken": "DeleteConflict"}
        )

        response = client.post(f"/api/accounts/{A}/users/inactive/delete?days=30")

        app_context.users.delete_inactive_users.assert_called_once_with(A, 30)
        body = response.get_json()
        assert body["message"].startswith("Deleted 1 inactive user(s) successfully")
        assert body["deleted_users"] == ["stale"]
        assert body["failed_users"] == {"broken": "DeleteConflict"}

    def test_rotate_password(self, client, app_context):
        app_context.users = MagicMock()
        app_context.users.rotate_user_password.return_value = PasswordRotation("alice", "N3w!Passw0rd")

        response = client.post(f"/api/accounts/{A}/users/alice/password/rotate")

        assert response.get_json() == {
            "username": "alice",
            "new_password": "N3w!Passw0rd",
            "message": "User password rotated successfully",
        }

    def test_delete_load_balancer_requires_id(self, client):
        response = client.delete(f"/api/accounts/{A}/regions/us-east-1/load-balancers")

        assert response.status_code == 400

    def test_delete_load_balancer(self, client, app_context):
        app_context.load_balancers = MagicMock()

        response = client.delete(f"/api/accounts/{A}/regions/us-east-1/load-balancers?id=legacy&type=classic")

        assert response.status_code == 200
        app_context.load_balancers.delete_load_balancer.assert_called_once_with(A, "us-east-1", "legacy", "classic")

    def test_cache_clear(self, client, app_context):
        app_context.cache.set("accounts", [])

        response = client.post("/api/cache/clear")

        assert response.get_json() == {"message": "Cache cleared successfully"}
        assert "accounts" not in app_context.cache

    def test_invalidate_account(self, client, app_context):
        app_context.cache.set(f"users:{A}", [])

        response = client.post(f"/api/cache/accounts/{A}/invalidate")

        assert response.status_code == 200
        assert f"users:{A}" not in app_context.cache


class TestSSOAndAzureRoutes:
    """SSO / Azure 라우트 테스트"""

    def test_sso_users(self, client, app_context):
        from core.services.types import SSOUser

        app_context.cache.set("sso-users", [SSOUser(user_id="u-1", user_name="alice", emails=["a@example.com"])])

        [user] = client.get("/api/sso/users").get_json()

        assert user["user_id"] == "u-1"
        assert user["emails"] == ["a@example.com"]

    def test_sso_account_assignments_invalidate(self, client, app_context):
        app_context.sso = MagicMock()

        response = client.post(f"/api/sso/cache/accounts/{A}/assignments/invalidate")

        assert response.status_code == 200
        app_context.sso.invalidate_account_assignments.assert_called_once_with(A)

    def test_azure_unconfigured_is_503(self, client):
        response = client.get("/api/azure/enterprise-applications")

        assert response.status_code == 503
        assert response.get_json()["details"]["config_key"] == "AZURE_TENANT_ID"

    def test_azure_vms_subscription_filter(self, client, app_context):
        app_context.azure_rm = MagicMock()
        app_context.azure_rm.list_vms.return_value = []

        response = client.get("/api/azure/vms?subscription=sub-1")

        assert response.get_json() == []
        app_context.azure_rm.list_vms.assert_called_once_with("sub-1")

    def test_azure_vm_stop(self, client, app_context):
        app_context.azure_rm = MagicMock()

        response = client.post("/api/azure/subscriptions/sub-1/vms/rg-web/web-01/stop")

        assert response.get_json() == {"message": "VM stop initiated"}
        app_context.azure_rm.stop_vm.assert_called_once_with("sub-1", "rg-web", "web-01")
