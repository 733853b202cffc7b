"""
tests/core/services/test_accounts.py - 계정 목록 + 두 계정 집계 시나리오 테스트
"""

import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from core.auth.broker import CredentialBroker
from core.auth.types import Account
from core.context import AppContext
from core.exceptions import AccountNotFoundError, SessionError
from core.services.types import UserWithAccount

A = "111111111111"
B = "222222222222"


def _paginator(pages):
    paginator = MagicMock()
    paginator.paginate.return_value = pages
    return paginator


@pytest.fixture
def aws(client_error):
    """서비스별 client를 돌려주는 마스터/멤버 세션"""
    org = MagicMock()
    org.get_paginator.return_value = _paginator(
        [{"Accounts": [{"Id": A, "Name": "prod"}]}, {"Accounts": [{"Id": B, "Name": "sandbox"}]}]
    )

    sts = MagicMock()

    def assume_role(**kwargs):
        if B in kwargs["RoleArn"]:
            raise client_error("AccessDenied", operation="AssumeRole")
        return {
            "Credentials": {
                "AccessKeyId": "ASIATEST",
                "SecretAccessKey": "secret",
                "SessionToken": "token",
                "Expiration": datetime(2030, 1, 1, tzinfo=timezone.utc),
            }
        }

    sts.assume_role.side_effect = assume_role

    iam = MagicMock()
    iam_paginators = {
        "list_users": _paginator(
            [{"Users": [{"UserName": "alice", "UserId": "AID1", "Arn": f"arn:aws:iam::{A}:user/alice"}]}]
        ),
        "list_access_keys": _paginator([{"AccessKeyMetadata": []}]),
    }
    iam.get_paginator.side_effect = lambda operation: iam_paginators[operation]

    clients = {"organizations": org, "sts": sts, "iam": iam}
    session = MagicMock()
    session.region_name = "us-east-1"
    session.client.side_effect = lambda service, **kwargs: clients[service]
    return session, clients


@pytest.fixture
def ctx(aws, test_settings):
    session, _ = aws
    with patch("core.auth.broker.boto3.Session", return_value=session):
        yield AppContext(test_settings, session, broker=CredentialBroker(session, "IAMManagerCrossAccountRole"))


class TestAccountService:
    """AccountService 테스트"""

    def test_list_accounts_marks_accessibility(self, ctx):
        accounts = ctx.accounts.list_accounts()

        assert accounts == [Account(A, "prod", True), Account(B, "sandbox", False)]
        assert ctx.accounts.list_accessible() == [Account(A, "prod", True)]

    def test_list_accounts_cached(self, ctx, aws):
        _, clients = aws
        ctx.accounts.list_accounts()
        ctx.accounts.list_accounts()

        assert clients["organizations"].get_paginator.call_count == 1

    def test_get_account_not_found(self, ctx):
        with pytest.raises(AccountNotFoundError):
            ctx.accounts.get_account("999999999999")

    def test_get_account_name_uses_cache_only(self, ctx, aws):
        _, clients = aws

        assert ctx.accounts.get_account_name(A) == A
        clients["organizations"].get_paginator.assert_not_called()

        ctx.accounts.list_accounts()
        assert ctx.accounts.get_account_name(A) == "prod"

    def test_require_accessible(self, ctx):
        assert ctx.accounts.require_accessible(A).name == "prod"
        with pytest.raises(SessionError):
            ctx.accounts.require_accessible(B)


class TestTwoAccountScenario:
    """접근 가능 계정 A + 접근 불가 계정 B 집계 시나리오"""

    def test_all_users_from_accessible_account_only(self, ctx, aws, caplog):
        """A의 사용자만 반환, B는 경고 1회, 두 번째 조회는 캐시"""
        _, clients = aws

        with caplog.at_level(logging.WARNING):
            users = ctx.users.list_all_users()

        assert [(u.username, u.account_id, u.account_name) for u in users] == [("alice", A, "prod")]
        assert all(isinstance(u, UserWithAccount) for u in users)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert B in warnings[0].getMessage()

        assume_calls = clients["sts"].assume_role.call_count
        again = ctx.users.list_all_users()

        assert again == users
        assert clients["sts"].assume_role.call_count == assume_calls

    def test_per_account_key_filled_by_aggregate(self, ctx, aws):
        """집계 조회가 계정별 키도 채워 이후 계정 조회가 AWS를 호출하지 않음"""
        _, clients = aws
        ctx.users.list_all_users()
        list_calls = clients["iam"].get_paginator.call_count

        users = ctx.users.list_users(A)

        assert [u.username for u in users] == ["alice"]
        assert clients["iam"].get_paginator.call_count == list_calls

    def test_list_users_inaccessible_account_returns_empty(self, ctx):
        assert ctx.users.list_users(B) == []
