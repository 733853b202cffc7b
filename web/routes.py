"""
web/routes.py - /api 라우트

서비스 호출 결과를 JSON으로 변환하는 얇은 핸들러입니다.
서비스 예외는 web.app의 에러 핸들러가 상태 코드로 변환합니다.

라우트 그룹:
    - 계정/사용자: /accounts, /users, /accounts/<id>/users/...
    - 네트워크: /public-ips, /security-groups, /vpcs, /nat-gateways
    - 컴퓨팅/스토리지: /ec2-instances, /ebs-volumes, /snapshots, /s3-buckets
    - IAM 역할/로드 밸런서: /roles, /load-balancers
    - IAM Identity Center: /sso/...
    - Azure: /azure/... (엔터프라이즈 앱, 구독/VM/스토리지 계정)
    - 캐시 관리: /cache/...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from flask import Blueprint, jsonify, request

from core.exceptions import PartialFailureError, ValidationError

from .app import get_context

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

DEFAULT_SNAPSHOT_MONTHS = 6


# =============================================================================
# 헬퍼
# =============================================================================


def _items(items: Iterable[Any]):
    return jsonify([item.to_dict() for item in items])


def _message(message: str, **extra: Any):
    return jsonify({"message": message, **extra})


def _int_arg(name: str, default: int | None = None) -> int | None:
    """양의 정수 쿼리 파라미터

    Raises:
        ValidationError: 정수가 아니거나 1 미만
    """
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(name, raw, "positive integer", e) from e
    if value < 1:
        raise ValidationError(name, raw, "positive integer")
    return value


# =============================================================================
# 계정 / 사용자
# =============================================================================


@api.get("/accounts")
def list_accounts():
    return _items(get_context().accounts.list_accounts())


@api.get("/users")
def list_all_users():
    return _items(get_context().users.list_all_users())


@api.get("/accounts/<account_id>/users")
def list_users(account_id: str):
    return _items(get_context().users.list_users(account_id))


@api.get("/accounts/<account_id>/users/<username>")
def get_user(account_id: str, username: str):
    return jsonify(get_context().users.get_user(account_id, username).to_dict())


@api.delete("/accounts/<account_id>/users/<username>")
def delete_user(account_id: str, username: str):
    get_context().users.delete_user(account_id, username)
    return _message("User deleted successfully")


@api.post("/accounts/<account_id>/users/inactive/delete")
def delete_inactive_users(account_id: str):
    result = get_context().users.delete_inactive_users(account_id, _int_arg("days"))
    message = f"Deleted {len(result.deleted)} inactive user(s) successfully"
    body: dict[str, Any] = {"deleted_users": result.deleted}
    if result.failed:
        message += f". Failed to delete {len(result.failed)} user(s)"
        body["failed_users"] = result.failed
    return _message(message, **body)


@api.delete("/accounts/<account_id>/users/<username>/password")
def delete_user_password(account_id: str, username: str):
    get_context().users.delete_user_password(account_id, username)
    return _message("User password deleted successfully")


@api.post("/accounts/<account_id>/users/<username>/password/rotate")
def rotate_user_password(account_id: str, username: str):
    return jsonify(get_context().users.rotate_user_password(account_id, username).to_dict())


@api.post("/accounts/<account_id>/users/<username>/keys")
def create_access_key(account_id: str, username: str):
    return jsonify(get_context().users.create_access_key(account_id, username).to_dict())


@api.delete("/accounts/<account_id>/users/<username>/keys/<key_id>")
def delete_access_key(account_id: str, username: str, key_id: str):
    get_context().users.delete_access_key(account_id, username, key_id)
    return _message("Access key deleted successfully")


@api.put("/accounts/<account_id>/users/<username>/keys/<key_id>/rotate")
def rotate_access_key(account_id: str, username: str, key_id: str):
    return jsonify(get_context().users.rotate_access_key(account_id, username, key_id).to_dict())


# =============================================================================
# 공인 IP / 보안 그룹
# =============================================================================


@api.get("/public-ips")
def list_public_ips():
    return _items(get_context().public_ips.list_public_ips())


@api.get("/security-groups")
def list_security_groups():
    return _items(get_context().security_groups.list_security_groups())


@api.get("/accounts/<account_id>/security-groups")
def list_security_groups_by_account(account_id: str):
    return _items(get_context().security_groups.list_security_groups_by_account(account_id))


@api.get("/accounts/<account_id>/regions/<region>/security-groups/<group_id>")
def get_security_group(account_id: str, region: str, group_id: str):
    return jsonify(get_context().security_groups.get_security_group(account_id, region, group_id).to_dict())


@api.delete("/accounts/<account_id>/regions/<region>/security-groups/<group_id>")
def delete_security_group(account_id: str, region: str, group_id: str):
    get_context().security_groups.delete_security_group(account_id, region, group_id)
    return _message(f"Security group {group_id} deleted successfully")


# =============================================================================
# 스냅샷
# =============================================================================


@api.get("/snapshots")
def list_snapshots():
    return _items(get_context().snapshots.list_snapshots())


@api.get("/accounts/<account_id>/snapshots")
def list_snapshots_by_account(account_id: str):
    return _items(get_context().snapshots.list_snapshots_by_account(account_id))


@api.delete("/accounts/<account_id>/regions/<region>/snapshots/<snapshot_id>")
def delete_snapshot(account_id: str, region: str, snapshot_id: str):
    get_context().snapshots.delete_snapshot(account_id, region, snapshot_id)
    return _message(f"Snapshot {snapshot_id} deleted successfully")


@api.post("/accounts/<account_id>/snapshots/delete-old")
def delete_old_snapshots(account_id: str):
    months = _int_arg("older_than_months", DEFAULT_SNAPSHOT_MONTHS)
    try:
        deleted = get_context().snapshots.delete_old_snapshots(account_id, months)
    except PartialFailureError as e:
        if not e.succeeded:
            raise
        # 일부만 삭제된 경우 206
        body = {
            "message": f"Deleted {len(e.succeeded)} snapshots, but encountered errors",
            "deleted_snapshots": e.succeeded,
            "error": str(e),
            "details": e.details,
        }
        return jsonify(body), 206

    return _message(
        f"Successfully deleted {len(deleted)} snapshot(s) older than {months} months",
        deleted_snapshots=deleted,
        count=len(deleted),
    )


# =============================================================================
# EC2 / EBS
# =============================================================================


@api.get("/ec2-instances")
def list_instances():
    return _items(get_context().ec2_instances.list_instances())


@api.post("/accounts/<account_id>/regions/<region>/instances/<instance_id>/stop")
def stop_instance(account_id: str, region: str, instance_id: str):
    get_context().ec2_instances.stop_instance(account_id, region, instance_id)
    return _message(f"Instance {instance_id} stop initiated successfully")


@api.post("/accounts/<account_id>/regions/<region>/instances/<instance_id>/terminate")
def terminate_instance(account_id: str, region: str, instance_id: str):
    get_context().ec2_instances.terminate_instance(account_id, region, instance_id)
    return _message(f"Instance {instance_id} termination initiated successfully")


@api.get("/ebs-volumes")
def list_volumes():
    return _items(get_context().ebs_volumes.list_volumes())


@api.get("/accounts/<account_id>/ebs-volumes")
def list_volumes_by_account(account_id: str):
    return _items(get_context().ebs_volumes.list_volumes_by_account(account_id))


@api.post("/accounts/<account_id>/regions/<region>/volumes/<volume_id>/detach")
def detach_volume(account_id: str, region: str, volume_id: str):
    get_context().ebs_volumes.detach_volume(account_id, region, volume_id)
    return _message(f"Volume {volume_id} detach initiated successfully")


@api.delete("/accounts/<account_id>/regions/<region>/volumes/<volume_id>")
def delete_volume(account_id: str, region: str, volume_id: str):
    get_context().ebs_volumes.delete_volume(account_id, region, volume_id)
    return _message(f"Volume {volume_id} deleted successfully")


# =============================================================================
# S3
# =============================================================================


@api.get("/s3-buckets")
def list_buckets():
    return _items(get_context().s3_buckets.list_buckets())


@api.get("/accounts/<account_id>/s3-buckets")
def list_buckets_by_account(account_id: str):
    return _items(get_context().s3_buckets.list_buckets_by_account(account_id))


@api.delete("/accounts/<account_id>/regions/<region>/buckets/<bucket_name>")
def delete_bucket(account_id: str, region: str, bucket_name: str):
    get_context().s3_buckets.delete_bucket(account_id, region, bucket_name)
    return _message(f"Bucket {bucket_name} deleted successfully")


# =============================================================================
# IAM 역할
# =============================================================================


@api.get("/roles")
def list_all_roles():
    return _items(get_context().roles.list_all_roles())


@api.get("/accounts/<account_id>/roles")
def list_roles(account_id: str):
    return _items(get_context().roles.list_roles(account_id))


@api.get("/accounts/<account_id>/roles/<role_name>")
def get_role(account_id: str, role_name: str):
    return jsonify(get_context().roles.get_role(account_id, role_name).to_dict())


@api.delete("/accounts/<account_id>/roles/<role_name>")
def delete_role(account_id: str, role_name: str):
    get_context().roles.delete_role(account_id, role_name)
    return _message(f"Role {role_name} deleted successfully")


# =============================================================================
# 로드 밸런서
# =============================================================================


@api.get("/load-balancers")
def list_load_balancers():
    return _items(get_context().load_balancers.list_load_balancers())


@api.get("/accounts/<account_id>/load-balancers")
def list_load_balancers_by_account(account_id: str):
    return _items(get_context().load_balancers.list_load_balancers_by_account(account_id))


@api.delete("/accounts/<account_id>/regions/<region>/load-balancers")
def delete_load_balancer(account_id: str, region: str):
    identifier = request.args.get("id", "")
    if not identifier:
        raise ValidationError("id", identifier, "load balancer ARN or name")
    lb_type = request.args.get("type") or None
    get_context().load_balancers.delete_load_balancer(account_id, region, identifier, lb_type)
    return _message(f"Load balancer {identifier} deleted successfully")


# =============================================================================
# VPC / NAT 게이트웨이
# =============================================================================


@api.get("/vpcs")
def list_vpcs():
    return _items(get_context().vpcs.list_vpcs())


@api.get("/accounts/<account_id>/vpcs")
def list_vpcs_by_account(account_id: str):
    return _items(get_context().vpcs.list_vpcs_by_account(account_id))


@api.delete("/accounts/<account_id>/regions/<region>/vpcs/<vpc_id>")
def delete_vpc(account_id: str, region: str, vpc_id: str):
    get_context().vpcs.delete_vpc(account_id, region, vpc_id)
    return _message(f"VPC {vpc_id} deleted successfully")


@api.get("/nat-gateways")
def list_nat_gateways():
    return _items(get_context().nat_gateways.list_nat_gateways())


@api.get("/accounts/<account_id>/nat-gateways")
def list_nat_gateways_by_account(account_id: str):
    return _items(get_context().nat_gateways.list_nat_gateways_by_account(account_id))


@api.delete("/accounts/<account_id>/regions/<region>/nat-gateways/<nat_gateway_id>")
def delete_nat_gateway(account_id: str, region: str, nat_gateway_id: str):
    get_context().nat_gateways.delete_nat_gateway(account_id, region, nat_gateway_id)
    return _message(f"NAT Gateway {nat_gateway_id} deletion initiated successfully")


# =============================================================================
# 캐시 관리
# =============================================================================


@api.post("/cache/clear")
def clear_cache():
    get_context().cache_admin.clear()
    return _message("Cache cleared successfully")


@api.post("/cache/accounts/<account_id>/invalidate")
def invalidate_account_cache(account_id: str):
    get_context().cache_admin.invalidate_account(account_id)
    return _message(f"Cache invalidated for account {account_id}")


@api.post("/cache/accounts/<account_id>/users/<username>/invalidate")
def invalidate_user_cache(account_id: str, username: str):
    get_context().cache_admin.invalidate_user(account_id, username)
    return _message(f"Cache invalidated for user {username} in account {account_id}")


@api.post("/cache/public-ips/invalidate")
def invalidate_public_ips_cache():
    get_context().cache_admin.invalidate_public_ips()
    return _message("Public IPs cache invalidated successfully")


@api.post("/cache/security-groups/invalidate")
def invalidate_security_groups_cache():
    get_context().cache_admin.invalidate_security_groups()
    return _message("Security groups cache invalidated successfully")


@api.post("/cache/accounts/<account_id>/security-groups/invalidate")
def invalidate_account_security_groups_cache(account_id: str):
    get_context().cache_admin.invalidate_security_groups(account_id)
    return _message(f"Security groups cache invalidated for account {account_id}")


@api.post("/cache/ec2-instances/invalidate")
def invalidate_ec2_instances_cache():
    get_context().cache_admin.invalidate_ec2_instances()
    return _message("EC2 instances cache invalidated successfully")


@api.post("/cache/ebs-volumes/invalidate")
def invalidate_ebs_volumes_cache():
    get_context().cache_admin.invalidate_ebs_volumes()
    return _message("EBS volumes cache invalidated successfully")


@api.post("/cache/s3-buckets/invalidate")
def invalidate_s3_buckets_cache():
    get_context().cache_admin.invalidate_s3_buckets()
    return _message("S3 buckets cache invalidated successfully")


@api.post("/cache/roles/invalidate")
def invalidate_roles_cache():
    get_context().cache_admin.invalidate_roles()
    return _message("Roles cache invalidated successfully")


@api.post("/cache/accounts/<account_id>/roles/invalidate")
def invalidate_account_roles_cache(account_id: str):
    get_context().cache_admin.invalidate_roles(account_id)
    return _message(f"Roles cache invalidated for account {account_id}")


@api.post("/cache/load-balancers/invalidate")
def invalidate_load_balancers_cache():
    get_context().cache_admin.invalidate_load_balancers()
    return _message("All load balancers cache invalidated")


@api.post("/cache/accounts/<account_id>/load-balancers/invalidate")
def invalidate_account_load_balancers_cache(account_id: str):
    get_context().cache_admin.invalidate_load_balancers(account_id)
    return _message(f"Load balancers cache invalidated for account {account_id}")


@api.post("/cache/vpcs/invalidate")
def invalidate_vpcs_cache():
    get_context().cache_admin.invalidate_vpcs()
    return _message("VPCs cache invalidated successfully")


@api.post("/cache/nat-gateways/invalidate")
def invalidate_nat_gateways_cache():
    get_context().cache_admin.invalidate_nat_gateways()
    return _message("NAT Gateways cache invalidated successfully")


@api.post("/cache/snapshots/invalidate")
def invalidate_snapshots_cache():
    get_context().cache_admin.invalidate_snapshots()
    return _message("Snapshots cache invalidated successfully")


# =============================================================================
# IAM Identity Center
# =============================================================================


@api.get("/sso/instance")
def get_sso_instance():
    return jsonify(get_context().sso.get_instance().to_dict())


@api.get("/sso/users")
def list_sso_users():
    return _items(get_context().sso.list_users())


@api.get("/sso/users/<user_id>")
def get_sso_user(user_id: str):
    return jsonify(get_context().sso.get_user(user_id).to_dict())


@api.get("/sso/users/<user_id>/assignments")
def list_sso_user_assignments(user_id: str):
    return _items(get_context().sso.list_user_assignments(user_id))


@api.get("/sso/groups")
def list_sso_groups():
    return _items(get_context().sso.list_groups())


@api.get("/sso/groups/<group_id>")
def get_sso_group(group_id: str):
    return jsonify(get_context().sso.get_group(group_id).to_dict())


@api.get("/sso/groups/<group_id>/members")
def list_sso_group_members(group_id: str):
    return _items(get_context().sso.list_group_members(group_id))


@api.get("/sso/groups/<group_id>/assignments")
def list_sso_group_assignments(group_id: str):
    return _items(get_context().sso.list_group_assignments(group_id))


@api.get("/sso/accounts/<account_id>/assignments")
def list_sso_account_assignments(account_id: str):
    return _items(get_context().sso.list_account_assignments(account_id))


@api.get("/sso/assignments/users")
def list_all_sso_user_assignments():
    return _items(get_context().sso.list_all_user_assignments())


@api.get("/sso/assignments/groups")
def list_all_sso_group_assignments():
    return _items(get_context().sso.list_all_group_assignments())


@api.get("/sso/assignments/accounts")
def list_all_sso_account_assignments():
    return _items(get_context().sso.list_all_account_assignments())


@api.post("/sso/cache/clear")
def clear_sso_cache():
    get_context().sso.clear_cache()
    return _message("SSO cache cleared successfully")


@api.post("/sso/cache/users/invalidate")
def invalidate_sso_users_cache():
    get_context().sso.invalidate_users()
    return _message("SSO users cache invalidated successfully")


@api.post("/sso/cache/groups/invalidate")
def invalidate_sso_groups_cache():
    get_context().sso.invalidate_groups()
    return _message("SSO groups cache invalidated successfully")


@api.post("/sso/cache/users/<user_id>/invalidate")
def invalidate_sso_user_cache(user_id: str):
    get_context().sso.invalidate_user(user_id)
    return _message(f"SSO cache invalidated for user {user_id}")


@api.post("/sso/cache/groups/<group_id>/invalidate")
def invalidate_sso_group_cache(group_id: str):
    get_context().sso.invalidate_group(group_id)
    return _message(f"SSO cache invalidated for group {group_id}")


@api.post("/sso/cache/accounts/<account_id>/assignments/invalidate")
def invalidate_sso_account_assignments_cache(account_id: str):
    get_context().sso.invalidate_account_assignments(account_id)
    return _message(f"SSO assignments cache invalidated for account {account_id}")


# =============================================================================
# Azure 엔터프라이즈 앱
# =============================================================================


@api.get("/azure/enterprise-applications")
def list_azure_enterprise_apps():
    return _items(get_context().azure_apps.list_enterprise_apps())


@api.get("/azure/enterprise-applications/<app_id>")
def get_azure_enterprise_app(app_id: str):
    return jsonify(get_context().azure_apps.get_enterprise_app(app_id).to_dict())


@api.delete("/azure/enterprise-applications/<app_id>")
def delete_azure_enterprise_app(app_id: str):
    get_context().azure_apps.delete_enterprise_app(app_id)
    return _message("Enterprise application deleted successfully")


@api.post("/azure/cache/clear")
def clear_azure_apps_cache():
    get_context().azure_apps.clear_cache()
    return _message("Azure cache cleared successfully")


@api.post("/azure/cache/enterprise-applications/invalidate")
def invalidate_azure_apps_cache():
    get_context().azure_apps.invalidate()
    return _message("Enterprise applications cache invalidated successfully")


@api.post("/azure/cache/enterprise-applications/<app_id>/invalidate")
def invalidate_azure_app_cache(app_id: str):
    get_context().azure_apps.invalidate(app_id)
    return _message(f"Cache invalidated for enterprise application {app_id}")


# =============================================================================
# Azure Resource Manager
# =============================================================================


@api.get("/azure/subscriptions")
def list_azure_subscriptions():
    return _items(get_context().azure_rm.list_subscriptions())


@api.get("/azure/vms")
def list_azure_vms():
    return _items(get_context().azure_rm.list_vms(request.args.get("subscription") or None))


@api.get("/azure/subscriptions/<subscription_id>/vms/<resource_group>/<name>")
def get_azure_vm(subscription_id: str, resource_group: str, name: str):
    return jsonify(get_context().azure_rm.get_vm(subscription_id, resource_group, name).to_dict())


@api.delete("/azure/subscriptions/<subscription_id>/vms/<resource_group>/<name>")
def delete_azure_vm(subscription_id: str, resource_group: str, name: str):
    get_context().azure_rm.delete_vm(subscription_id, resource_group, name)
    return _message("VM deletion initiated")


@api.post("/azure/subscriptions/<subscription_id>/vms/<resource_group>/<name>/start")
def start_azure_vm(subscription_id: str, resource_group: str, name: str):
    get_context().azure_rm.start_vm(subscription_id, resource_group, name)
    return _message("VM start initiated")


@api.post("/azure/subscriptions/<subscription_id>/vms/<resource_group>/<name>/stop")
def stop_azure_vm(subscription_id: str, resource_group: str, name: str):
    get_context().azure_rm.stop_vm(subscription_id, resource_group, name)
    return _message("VM stop initiated")


@api.get("/azure/storage-accounts")
def list_azure_storage_accounts():
    return _items(get_context().azure_rm.list_storage_accounts(request.args.get("subscription") or None))


@api.get("/azure/subscriptions/<subscription_id>/storage-accounts/<resource_group>/<name>")
def get_azure_storage_account(subscription_id: str, resource_group: str, name: str):
    return jsonify(get_context().azure_rm.get_storage_account(subscription_id, resource_group, name).to_dict())


@api.delete("/azure/subscriptions/<subscription_id>/storage-accounts/<resource_group>/<name>")
def delete_azure_storage_account(subscription_id: str, resource_group: str, name: str):
    get_context().azure_rm.delete_storage_account(subscription_id, resource_group, name)
    return _message("Storage account deleted successfully")


@api.post("/azure/rm/cache/clear")
def clear_azure_rm_cache():
    get_context().azure_rm.clear_cache()
    return _message("Azure resource cache cleared successfully")


@api.post("/azure/rm/cache/vms/invalidate")
def invalidate_azure_vms_cache():
    get_context().azure_rm.invalidate_vms()
    return _message("VMs cache invalidated successfully")


@api.post("/azure/rm/cache/storage/invalidate")
def invalidate_azure_storage_cache():
    get_context().azure_rm.invalidate_storage()
    return _message("Storage accounts cache invalidated successfully")
