"""
core/services/accounts.py - 조직 계정 목록

Organizations.list_accounts를 페이지 단위로 조회하고,
계정마다 교차 계정 역할 위임을 시도해 접근 가능 여부를 표시합니다.
결과는 "accounts" 키로 캐시됩니다.
"""

from __future__ import annotations

import logging

from core.auth.types import Account
from core.cache.keys import ACCOUNTS
from core.exceptions import AccountNotFoundError, SessionError
from core.parallel.client import get_client, paginate

from .base import BaseService

logger = logging.getLogger(__name__)


class AccountService(BaseService):
    """조직 계정 서비스"""

    def list_accounts(self) -> list[Account]:
        """조직의 모든 계정 (접근 가능 여부 포함)

        Raises:
            APICallError: 조직 계정 목록 조회 실패
        """
        cached = self._cached(ACCOUNTS.aggregate, Account)
        if cached is not None:
            return cached

        org = get_client(self.ctx.master_session, "organizations")
        raw_accounts = paginate(org, "list_accounts", "Accounts")

        accounts = [
            Account(
                id=raw["Id"],
                name=raw.get("Name", ""),
                accessible=self.ctx.broker.can_access(raw["Id"]),
            )
            for raw in raw_accounts
        ]

        accessible = sum(1 for a in accounts if a.accessible)
        logger.info(f"조직 계정 {len(accounts)}개 조회 (접근 가능 {accessible}개)")
        return self._store(ACCOUNTS.aggregate, accounts)

    def list_accessible(self) -> list[Account]:
        """역할 위임이 가능한 계정만"""
        return [a for a in self.list_accounts() if a.accessible]

    def get_account(self, account_id: str) -> Account:
        """계정 조회

        Raises:
            AccountNotFoundError: 조직에 없는 계정
        """
        for account in self.list_accounts():
            if account.id == account_id:
                return account
        raise AccountNotFoundError(account_id)

    def get_account_name(self, account_id: str) -> str:
        """캐시된 계정 목록에서 이름 조회 (없으면 계정 ID)

        AWS를 호출하지 않으므로 캐시가 비어 있으면 항상 ID를 반환합니다.
        """
        for account in self._cached(ACCOUNTS.aggregate, Account) or []:
            if account.id == account_id:
                return account.name
        return account_id

    def require_accessible(self, account_id: str) -> Account:
        """접근 가능한 계정인지 확인

        Raises:
            AccountNotFoundError: 조직에 없는 계정
            SessionError: 역할 위임이 불가능한 계정
        """
        account = self.get_account(account_id)
        if not account.accessible:
            raise SessionError(account_id, "교차 계정 역할에 접근할 수 없습니다")
        return account
