"""
tests/core/services/test_sso.py - IAM Identity Center 서비스 테스트

sso-admin / identitystore 호출은 작업 이름이 겹치지 않으므로
하나의 MagicMock client에 작업별 페이지네이터 응답을 등록해 검증합니다.
"""

import logging
from unittest.mock import MagicMock

import pytest

from core.auth.types import Account
from core.exceptions import APICallError, NotFoundError
from core.services.sso import permission_set_name_from_arn

INSTANCE_ARN = "arn:aws:sso:::instance/ssoins-1111"
STORE_ID = "d-1111111111"
PS_ADMIN = "arn:aws:sso:::permissionSet/ssoins-1111/ps-admin"
PS_READ = "arn:aws:sso:::permissionSet/ssoins-1111/ps-read"

PAGES = {
    "list_instances": [{"Instances": [{"InstanceArn": INSTANCE_ARN, "IdentityStoreId": STORE_ID}]}],
    "list_users": [
        {
            "Users": [
                {
                    "UserId": "u-1",
                    "UserName": "alice",
                    "DisplayName": "Alice Kim",
                    "Emails": [{"Value": "alice@example.com"}, {}],
                },
                {"UserId": "u-2", "UserName": "bob"},
            ]
        }
    ],
    "list_groups": [{"Groups": [{"GroupId": "g-1", "DisplayName": "admins"}]}],
    "list_group_memberships": [
        {
            "GroupMemberships": [
                {"MemberId": {"UserId": "u-1"}},
                {"MemberId": {}},
            ]
        }
    ],
    "list_permission_sets": [{"PermissionSets": [PS_ADMIN, PS_READ]}],
}


def _mock_sso(mock_session, pages=None, failing=None):
    """작업별 페이지 응답이 정해진 MagicMock client

    failing: {(작업, 파라미터 값): 예외} - 해당 값으로 호출된 페이지네이션은 예외 발생
    """
    pages = {**PAGES, **(pages or {})}
    failing = failing or {}
    client = mock_session.client.return_value

    def get_paginator(operation):
        def paginate(**kwargs):
            for value in kwargs.values():
                if (operation, value) in failing:
                    raise failing[(operation, value)]
            return pages.get(operation, [{}])

        paginator = MagicMock()
        paginator.paginate.side_effect = paginate
        return paginator

    users = {u["UserId"]: u for page in pages["list_users"] for u in page.get("Users", [])}
    groups = {g["GroupId"]: g for page in pages["list_groups"] for g in page.get("Groups", [])}
    client.get_paginator.side_effect = get_paginator
    client.describe_user.side_effect = lambda IdentityStoreId, UserId: users[UserId]
    client.describe_group.side_effect = lambda IdentityStoreId, GroupId: groups[GroupId]
    client.describe_permission_set.side_effect = lambda InstanceArn, PermissionSetArn: {
        "PermissionSet": {"Name": PermissionSetArn.rsplit("/", 1)[-1].replace("ps-", "").title()}
    }
    return client


class TestPermissionSetName:
    """권한 세트 ARN → 이름 테스트"""

    def test_last_segment(self):
        assert permission_set_name_from_arn(PS_ADMIN) == "ps-admin"

    def test_not_an_arn(self):
        assert permission_set_name_from_arn("admin") == "admin"


class TestInstance:
    """인스턴스 조회 테스트"""

    def test_first_instance_cached(self, app_context, mock_session):
        client = _mock_sso(mock_session)

        instance = app_context.sso.get_instance()
        app_context.sso.get_instance()

        assert instance.instance_arn == INSTANCE_ARN
        assert instance.identity_store_id == STORE_ID
        assert client.get_paginator.call_count == 1

    def test_uses_sso_region(self, app_context, mock_session):
        _mock_sso(mock_session)

        app_context.sso.get_instance()

        assert mock_session.client.call_args.kwargs["region_name"] == app_context.settings.SSO_REGION

    def test_no_instance(self, app_context, mock_session):
        _mock_sso(mock_session, {"list_instances": [{"Instances": []}]})

        with pytest.raises(NotFoundError):
            app_context.sso.get_instance()


class TestUsersAndGroups:
    """사용자/그룹 조회 테스트"""

    def test_list_users_with_emails(self, app_context, mock_session):
        _mock_sso(mock_session)

        users = app_context.sso.list_users()

        assert [u.user_name for u in users] == ["alice", "bob"]
        assert users[0].emails == ["alice@example.com"]
        assert users[1].emails == []

    def test_principal_name_prefers_display_name(self, app_context, mock_session):
        _mock_sso(mock_session)

        users = app_context.sso.list_users()

        assert [u.principal_name for u in users] == ["Alice Kim", "bob"]

    def test_group_members_skip_non_users(self, app_context, mock_session):
        _mock_sso(mock_session)

        members = app_context.sso.list_group_members("g-1")

        assert [(m.member_id, m.user_name, m.display_name) for m in members] == [("u-1", "alice", "Alice Kim")]

    def test_group_member_detail_failure_kept(self, app_context, mock_session, client_error):
        client = _mock_sso(mock_session)
        client.describe_user.side_effect = client_error("AccessDeniedException")

        members = app_context.sso.list_group_members("g-1")

        assert [(m.member_id, m.user_name) for m in members] == [("u-1", "")]


class TestAccountAssignments:
    """계정 할당 조회 테스트"""

    ASSIGNMENTS = {
        "list_account_assignments": [
            {"AccountAssignments": [{"PrincipalId": "u-1", "PrincipalType": "USER"}]}
        ],
    }

    def test_assignments_per_permission_set(self, app_context, mock_session, seed_accounts):
        _mock_sso(mock_session, self.ASSIGNMENTS)
        seed_accounts(app_context, Account("111111111111", "prod", True))

        assignments = app_context.sso.list_account_assignments("111111111111")

        assert [a.permission_set_name for a in assignments] == ["Admin", "Read"]
        assert {a.account_name for a in assignments} == {"prod"}
        assert {a.principal_name for a in assignments} == {"Alice Kim"}

    def test_failing_permission_set_skipped(self, app_context, mock_session, client_error):
        _mock_sso(
            mock_session,
            self.ASSIGNMENTS,
            failing={("list_account_assignments", PS_ADMIN): client_error("AccessDeniedException")},
        )

        assignments = app_context.sso.list_account_assignments("111111111111")

        assert [a.permission_set_arn for a in assignments] == [PS_READ]

    def test_permission_set_name_falls_back_to_arn(self, app_context, mock_session, client_error):
        client = _mock_sso(mock_session, self.ASSIGNMENTS)
        client.describe_permission_set.side_effect = client_error("AccessDeniedException")

        assignments = app_context.sso.list_account_assignments("111111111111")

        assert [a.permission_set_name for a in assignments] == ["ps-admin", "ps-read"]
        assert app_context.cache.get(f"sso-ps-name:{PS_ADMIN}") is None

    def test_unknown_principal_uses_id(self, app_context, mock_session):
        _mock_sso(
            mock_session,
            {
                "list_account_assignments": [
                    {"AccountAssignments": [{"PrincipalId": "g-unknown", "PrincipalType": "GROUP"}]}
                ]
            },
        )
        client = mock_session.client.return_value
        client.describe_group.side_effect = APICallError("identitystore", "describe_group", "ResourceNotFound")

        assignments = app_context.sso.list_account_assignments("111111111111")

        assert {a.principal_name for a in assignments} == {"g-unknown"}

    def test_user_assignments_for_principal(self, app_context, mock_session, seed_accounts):
        _mock_sso(
            mock_session,
            {
                "list_account_assignments_for_principal": [
                    {"AccountAssignments": [{"AccountId": "111111111111", "PermissionSetArn": PS_READ}]}
                ]
            },
        )
        seed_accounts(app_context, Account("111111111111", "prod", True))

        assignments = app_context.sso.list_user_assignments("u-1")

        assert len(assignments) == 1
        assert assignments[0].account_name == "prod"
        assert assignments[0].principal_type == "USER"
        assert assignments[0].permission_set_name == "Read"

    def test_all_user_assignments_include_groups(self, app_context, mock_session):
        _mock_sso(mock_session)

        result = app_context.sso.list_all_user_assignments()

        by_user = {u.user_id: u for u in result}
        assert by_user["u-1"].group_memberships == ["g-1"]
        assert by_user["u-2"].group_memberships == []

    def test_all_group_assignments_count_members(self, app_context, mock_session):
        _mock_sso(mock_session)

        result = app_context.sso.list_all_group_assignments()

        assert [(g.group_id, g.member_count) for g in result] == [("g-1", 1)]


class TestAllAccountAssignments:
    """전체 계정 할당 팬아웃 테스트"""

    ACCOUNTS = (
        Account("111111111111", "prod", True),
        Account("222222222222", "dev", False),
        Account("333333333333", "stage", True),
    )

    def test_keeps_account_order_and_fills_failures(self, app_context, mock_session, seed_accounts, monkeypatch):
        _mock_sso(mock_session)
        seed_accounts(app_context, *self.ACCOUNTS)
        service = app_context.sso
        original = service.list_account_assignments

        def list_account_assignments(account_id):
            if account_id == "333333333333":
                raise APICallError("sso-admin", "list_account_assignments", "ThrottlingException")
            return original(account_id)

        monkeypatch.setattr(service, "list_account_assignments", list_account_assignments)

        result = service.list_all_account_assignments()

        assert [(r.account_id, r.account_name) for r in result] == [
            ("111111111111", "prod"),
            ("222222222222", "dev"),
            ("333333333333", "stage"),
        ]
        assert result[2].assignments == []

    def test_failure_summary_logged(self, app_context, mock_session, seed_accounts, monkeypatch, caplog):
        _mock_sso(mock_session)
        seed_accounts(app_context, *self.ACCOUNTS)
        service = app_context.sso

        def list_account_assignments(account_id):
            raise APICallError("sso-admin", "list_account_assignments", "ThrottlingException")

        monkeypatch.setattr(service, "list_account_assignments", list_account_assignments)

        with caplog.at_level(logging.INFO, logger="core.services.base"):
            service.list_all_account_assignments()

        assert "list_all_account_assignments: 0/3개 작업 성공" in caplog.text
        assert "list_all_account_assignments 실패 요약" in caplog.text

    def test_inaccessible_accounts_use_management_session(self, app_context, mock_session, mock_broker, seed_accounts):
        _mock_sso(mock_session)
        seed_accounts(app_context, *self.ACCOUNTS)

        app_context.sso.list_all_account_assignments()

        mock_broker.resolve_session.assert_not_called()


class TestInvalidation:
    """SSO 캐시 무효화 테스트"""

    def test_clear_keeps_aws_keys(self, app_context):
        app_context.cache.set("sso-users", [])
        app_context.cache.set("sso-user:u-1", "x")
        app_context.cache.set("all-users", [])

        app_context.sso.clear_cache()

        assert app_context.cache.get("sso-users") is None
        assert app_context.cache.get("sso-user:u-1") is None
        assert app_context.cache.get("all-users") == []

    def test_account_assignments_drop_aggregates(self, app_context):
        for key in (
            "sso-account-assignments:111111111111",
            "sso-account-assignments:222222222222",
            "sso-all-account-assignments",
            "sso-all-user-assignments",
            "sso-user-assignments:u-1",
        ):
            app_context.cache.set(key, [])

        app_context.sso.invalidate_account_assignments("111111111111")

        assert app_context.cache.get("sso-account-assignments:111111111111") is None
        assert app_context.cache.get("sso-all-account-assignments") is None
        assert app_context.cache.get("sso-all-user-assignments") is None
        assert app_context.cache.get("sso-user-assignments:u-1") is None
        assert app_context.cache.get("sso-account-assignments:222222222222") == []
