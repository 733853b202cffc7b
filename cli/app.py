"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.

명령어 구조:
    iam-manager serve                     # HTTP API 서버 실행
    iam-manager accounts [--json]         # 조직 계정 + 접근 가능 여부
    iam-manager users [-a ID] [--json]    # IAM 사용자 (계정 미지정 시 전체)
    iam-manager regions [-a ID] [--json]  # 활성 리전
    iam-manager --version                 # 버전 표시

AppContext는 첫 명령 실행 시 생성되며, 테스트에서는 obj로 주입할 수 있습니다.

Usage:
    $ iam-manager accounts
    $ iam-manager users --account 111111111111 --json
    $ python -m cli.app serve --port 9000
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Callable
from typing import Any

import click

from core.config import LogConfig, get_version
from core.context import AppContext
from core.exceptions import IAMManagerError
from core.region.data import REGION_NAMES

from .ui import console, print_error, print_info, print_table

logger = logging.getLogger(__name__)

VERSION = get_version()


def _app_context(ctx: click.Context) -> AppContext:
    """obj에 주입된 AppContext (없으면 환경변수로 생성)"""
    root = ctx.find_root()
    if not isinstance(root.obj, AppContext):
        root.obj = AppContext.create()
    return root.obj


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _echo_json(items: list[Any]) -> None:
    click.echo(json.dumps([item.to_dict() for item in items], ensure_ascii=False, indent=2))


def handle_errors(func: Callable) -> Callable:
    """IAMManagerError → 에러 메시지 출력 후 종료 코드 1"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IAMManagerError as e:
            print_error(str(e))
            raise SystemExit(1) from e

    return wrapper


json_option = click.option("--json", "as_json", is_flag=True, help="JSON으로 출력")


# =============================================================================
# 명령어 그룹
# =============================================================================


@click.group(name="iam-manager")
@click.version_option(version=VERSION, prog_name="iam-manager")
@click.option("-v", "--verbose", is_flag=True, help="DEBUG 로그 출력")
def cli(verbose: bool) -> None:
    """다중 계정 AWS IAM/리소스 관리 도구"""
    config = LogConfig.from_env()
    if verbose:
        config.level = "DEBUG"
    config.apply()


@cli.command()
@click.option("--host", default=None, help="바인드 주소 (기본: HOST 환경변수)")
@click.option("--port", type=int, default=None, help="포트 (기본: PORT 환경변수)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """HTTP API 서버 실행"""
    from web import create_app

    app_ctx = _app_context(ctx)
    settings = app_ctx.settings
    host = host or settings.HOST
    port = port or settings.PORT

    print_info(f"서버 시작: http://{host}:{port} (role={settings.ROLE_NAME})")
    create_app(app_ctx).run(host=host, port=port, debug=settings.DEBUG, threaded=True)


@cli.command()
@json_option
@click.pass_context
@handle_errors
def accounts(ctx: click.Context, as_json: bool) -> None:
    """조직 계정 목록과 교차 계정 역할 접근 가능 여부"""
    items = _app_context(ctx).accounts.list_accounts()
    if as_json:
        _echo_json(items)
        return

    rows = [[acc.id, acc.name, "[green]예[/green]" if acc.accessible else "[red]아니오[/red]"] for acc in items]
    print_table(f"계정 ({len(items)})", ["계정 ID", "이름", "접근 가능"], rows)


@cli.command()
@click.option("-a", "--account", "account_id", default=None, help="계정 ID (미지정 시 전체 계정)")
@json_option
@click.pass_context
@handle_errors
def users(ctx: click.Context, account_id: str | None, as_json: bool) -> None:
    """IAM 사용자 목록"""
    app_ctx = _app_context(ctx)
    if account_id:
        items = app_ctx.users.list_users(account_id)
        account_names = {account_id: app_ctx.accounts.get_account_name(account_id)}
    else:
        items = app_ctx.users.list_all_users()
        account_names = {}

    if as_json:
        _echo_json(items)
        return

    rows = []
    for user in items:
        owner = getattr(user, "account_id", "") or account_id
        name = getattr(user, "account_name", "") or account_names.get(owner, owner)
        rows.append(
            [
                f"{name} ({owner})",
                user.username,
                "예" if user.password_set else "-",
                _format_time(user.password_last_used),
                len(user.access_keys),
                _format_time(user.create_date),
            ]
        )
    print_table(
        f"IAM 사용자 ({len(items)})",
        ["계정", "사용자", "콘솔 비밀번호", "마지막 로그인", "액세스 키", "생성일"],
        rows,
    )


@cli.command()
@click.option("-a", "--account", "account_id", default=None, help="계정 ID (미지정 시 관리 계정)")
@json_option
@click.pass_context
@handle_errors
def regions(ctx: click.Context, account_id: str | None, as_json: bool) -> None:
    """계정의 활성 리전 목록"""
    app_ctx = _app_context(ctx)
    if account_id:
        session = app_ctx.broker.resolve_session(account_id)
    else:
        session = app_ctx.master_session

    names = app_ctx.regions.list_regions(session, account_id or "")
    if as_json:
        click.echo(json.dumps(names, indent=2))
        return

    console.print(f"[bold]활성 리전 ({len(names)})[/bold]")
    for name in names:
        console.print(f"  {name}  [dim]{REGION_NAMES.get(name, '')}[/dim]")


if __name__ == "__main__":
    cli()
