"""
tests/core/services/test_network_resources.py - VPC/NAT 게이트웨이/EC2 인스턴스 서비스 테스트
"""

from unittest.mock import MagicMock

import pytest

from core.auth.types import Account
from core.pricing import get_ec2_monthly_cost
from core.services.nat_gateways import fetch_nat_gateways

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"


@pytest.fixture
def ctx(moto_context, seed_accounts):
    seed_accounts(moto_context, Account(ACCOUNT_ID, "moto", True))
    moto_context.cache.set(f"regions:{ACCOUNT_ID}", [REGION])
    return moto_context


class TestVPCService:
    """VPC 서비스 테스트 (moto)"""

    def test_default_vpc_details(self, ctx):
        vpcs = ctx.vpcs.list_vpcs_by_account(ACCOUNT_ID)

        default = next(v for v in vpcs if v.is_default)
        assert default.region == REGION
        assert default.subnet_count > 0
        assert default.has_flow_logs is False

    def test_delete_vpc_invalidates(self, ctx, moto_session):
        ec2 = moto_session.client("ec2", region_name=REGION)
        vpc_id = ec2.create_vpc(CidrBlock="10.10.0.0/16")["Vpc"]["VpcId"]
        assert vpc_id in [v.vpc_id for v in ctx.vpcs.list_vpcs()]

        ctx.vpcs.delete_vpc(ACCOUNT_ID, REGION, vpc_id)

        assert f"vpcs-{ACCOUNT_ID}" not in ctx.cache
        assert "all-vpcs" not in ctx.cache
        assert vpc_id not in [v.vpc_id for v in ctx.vpcs.list_vpcs()]


class TestNATGatewayService:
    """NAT 게이트웨이 서비스 테스트"""

    def test_fetch_addresses(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {
                "NatGateways": [
                    {
                        "NatGatewayId": "nat-1",
                        "VpcId": "vpc-1",
                        "State": "available",
                        "NatGatewayAddresses": [{"PublicIp": "4.4.4.4", "PrivateIp": "10.0.0.5"}],
                    }
                ]
            }
        ]
        session = MagicMock()
        session.client.return_value = client

        [nat] = fetch_nat_gateways(session, "111111111111", "prod", REGION)

        assert (nat.public_ip, nat.private_ip, nat.vpc_id) == ("4.4.4.4", "10.0.0.5", "vpc-1")

    def test_delete_invalidates_vpcs_and_public_ips(self, app_context, mock_session):
        account_id = "111111111111"
        for key in (f"nat-gateways-{account_id}", "all-nat-gateways", f"vpcs-{account_id}", "all-vpcs", "public-ips"):
            app_context.cache.set(key, [])
        app_context.cache.set("vpcs-222222222222", [])

        app_context.nat_gateways.delete_nat_gateway(account_id, REGION, "nat-1")

        mock_session.client.return_value.delete_nat_gateway.assert_called_once_with(NatGatewayId="nat-1")
        assert app_context.cache.keys() == ["vpcs-222222222222"]


class TestEC2InstanceService:
    """EC2 인스턴스 서비스 테스트 (moto)"""

    @pytest.fixture
    def instance_id(self, ctx, moto_session):
        ec2 = moto_session.client("ec2", region_name=REGION)
        image_id = ec2.describe_images(Owners=["amazon"])["Images"][0]["ImageId"]
        reservation = ec2.run_instances(
            ImageId=image_id,
            InstanceType="t3.medium",
            MinCount=1,
            MaxCount=1,
            TagSpecifications=[{"ResourceType": "instance", "Tags": [{"Key": "Name", "Value": "web"}]}],
        )
        return reservation["Instances"][0]["InstanceId"]

    def test_list_with_cost(self, ctx, instance_id):
        [instance] = ctx.ec2_instances.list_instances()

        assert instance.instance_id == instance_id
        assert instance.name == "web"
        assert instance.account_name == "moto"
        assert instance.monthly_cost == get_ec2_monthly_cost("t3.medium", instance.state)

    def test_stop_invalidates(self, ctx, instance_id, moto_session):
        ctx.ec2_instances.list_instances_by_account(ACCOUNT_ID)

        ctx.ec2_instances.stop_instance(ACCOUNT_ID, REGION, instance_id)

        assert f"ec2-instances:{ACCOUNT_ID}" not in ctx.cache
        [instance] = ctx.ec2_instances.list_instances_by_account(ACCOUNT_ID)
        assert instance.state in ("stopping", "stopped")
        assert instance.monthly_cost == 0.0

    def test_terminate_invalidates_volumes(self, ctx, instance_id):
        ctx.cache.set(f"ebs-volumes:{ACCOUNT_ID}", [])

        ctx.ec2_instances.terminate_instance(ACCOUNT_ID, REGION, instance_id)

        assert f"ebs-volumes:{ACCOUNT_ID}" not in ctx.cache
