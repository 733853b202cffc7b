"""
core/pricing.py - EC2/EBS 월간 비용 추정

us-east-1 On-Demand(Linux) 기준 정적 단가로 월간 비용을 추정합니다.
리전별 차이와 할인(RI/SP)은 반영하지 않습니다.

EBS 비용 계산:
- gp3: GB당 $0.08 + 3000 IOPS 초과분 IOPS당 $0.005 + 125 MB/s 초과분 MB/s당 $0.04
- gp2: GB당 $0.10
- io1: GB당 $0.125 + IOPS당 $0.065
- io2: GB당 $0.125 + 구간별 IOPS (~32000: $0.065, ~64000: $0.046, 초과: $0.032)
- st1: GB당 $0.045 / sc1: GB당 $0.025 / standard: GB당 $0.05

사용법:
    from core.pricing import get_ec2_monthly_cost, get_ebs_monthly_cost

    get_ec2_monthly_cost("t3.medium", "running")  # 29.95
    get_ebs_monthly_cost("gp3", size_gb=100, iops=4000, throughput=125)  # 13.0
"""

from __future__ import annotations

# 월 운영 시간 (24시간 × 30일)
HOURS_PER_MONTH = 24 * 30

# EC2 시간당 단가 (USD)
EC2_HOURLY_PRICES: dict[str, float] = {
    "t3.nano": 0.0052,
    "t3.micro": 0.0104,
    "t3.small": 0.0208,
    "t3.medium": 0.0416,
    "t3.large": 0.0832,
    "t3.xlarge": 0.1664,
    "t3.2xlarge": 0.3328,
    "t3a.nano": 0.0047,
    "t3a.micro": 0.0094,
    "t3a.small": 0.0188,
    "t3a.medium": 0.0376,
    "t3a.large": 0.0752,
    "t3a.xlarge": 0.1504,
    "t3a.2xlarge": 0.3008,
    "t4g.nano": 0.0034,
    "t4g.micro": 0.0068,
    "t4g.small": 0.0136,
    "t4g.medium": 0.0272,
    "t4g.large": 0.0544,
    "t4g.xlarge": 0.1088,
    "t4g.2xlarge": 0.2176,
    "m5.large": 0.096,
    "m5.xlarge": 0.192,
    "m5.2xlarge": 0.384,
    "m5.4xlarge": 0.768,
    "m5.8xlarge": 1.536,
    "m5.12xlarge": 2.304,
    "m5.16xlarge": 3.072,
    "m5.24xlarge": 4.608,
    "m5a.large": 0.086,
    "m5a.xlarge": 0.172,
    "m5a.2xlarge": 0.344,
    "m5a.4xlarge": 0.688,
    "m6i.large": 0.096,
    "m6i.xlarge": 0.192,
    "m6i.2xlarge": 0.384,
    "m6i.4xlarge": 0.768,
    "m6i.8xlarge": 1.536,
    "c5.large": 0.085,
    "c5.xlarge": 0.17,
    "c5.2xlarge": 0.34,
    "c5.4xlarge": 0.68,
    "c5.9xlarge": 1.53,
    "c5a.large": 0.077,
    "c5a.xlarge": 0.154,
    "c5a.2xlarge": 0.308,
    "c6i.large": 0.085,
    "c6i.xlarge": 0.17,
    "c6i.2xlarge": 0.34,
    "c6i.4xlarge": 0.68,
    "r5.large": 0.126,
    "r5.xlarge": 0.252,
    "r5.2xlarge": 0.504,
    "r5.4xlarge": 1.008,
    "r5a.large": 0.113,
    "r5a.xlarge": 0.226,
    "r6i.large": 0.126,
    "r6i.xlarge": 0.252,
    "r6i.2xlarge": 0.504,
    "i3.large": 0.156,
    "i3.xlarge": 0.312,
    "i3en.large": 0.216,
    "i3en.xlarge": 0.432,
    "g4dn.xlarge": 0.526,
    "g4dn.2xlarge": 0.752,
    "p3.2xlarge": 3.06,
    "p3.8xlarge": 12.24,
    "p4d.24xlarge": 32.77,
}

# 표에 없는 인스턴스 타입의 패밀리별 추정 단가
EC2_FAMILY_DEFAULTS: tuple[tuple[tuple[str, ...], float], ...] = (
    (("t3.", "t3a."), 0.05),
    (("t4g.",), 0.04),
    (("m5.", "m5a.", "m6i."), 0.20),
    (("c5.", "c5a.", "c6i."), 0.18),
    (("r5.", "r5a.", "r6i."), 0.25),
)
EC2_GENERIC_DEFAULT = 0.10

# EBS GB당 월 단가 (USD)
EBS_GB_PRICES: dict[str, float] = {
    "gp3": 0.08,
    "gp2": 0.10,
    "io1": 0.125,
    "io2": 0.125,
    "st1": 0.045,
    "sc1": 0.025,
    "standard": 0.05,
}

GP3_BASELINE_IOPS = 3000
GP3_BASELINE_THROUGHPUT = 125
GP3_IOPS_PRICE = 0.005
GP3_THROUGHPUT_PRICE = 0.04
IO1_IOPS_PRICE = 0.065
# io2 구간별 IOPS 단가: (구간 상한, 단가)
IO2_IOPS_TIERS: tuple[tuple[int | None, float], ...] = (
    (32000, 0.065),
    (64000, 0.046),
    (None, 0.032),
)


def get_ec2_hourly_price(instance_type: str) -> float:
    """EC2 인스턴스 시간당 단가 (표에 없으면 패밀리 추정값)"""
    normalized = instance_type.lower()
    if normalized in EC2_HOURLY_PRICES:
        return EC2_HOURLY_PRICES[normalized]
    for prefixes, price in EC2_FAMILY_DEFAULTS:
        if normalized.startswith(prefixes):
            return price
    return EC2_GENERIC_DEFAULT


def get_ec2_monthly_cost(instance_type: str, state: str) -> float:
    """EC2 인스턴스 월간 비용 (running 상태가 아니면 0)"""
    if state != "running":
        return 0.0
    return round(get_ec2_hourly_price(instance_type) * HOURS_PER_MONTH, 2)


def _io2_iops_cost(iops: int) -> float:
    cost = 0.0
    lower = 0
    for upper, price in IO2_IOPS_TIERS:
        if iops <= lower:
            break
        tier_top = iops if upper is None else min(iops, upper)
        cost += (tier_top - lower) * price
        if upper is None:
            break
        lower = upper
    return cost


def get_ebs_monthly_cost(
    volume_type: str,
    size_gb: int,
    iops: int | None = None,
    throughput: int | None = None,
) -> float:
    """EBS 볼륨 월간 비용

    Args:
        volume_type: 볼륨 타입 (알 수 없으면 gp2 단가)
        size_gb: 크기 (GB)
        iops: 프로비저닝 IOPS
        throughput: 프로비저닝 처리량 (MB/s, gp3)

    Returns:
        월간 USD 비용 (소수점 둘째 자리 반올림)
    """
    volume_type = volume_type.lower()
    cost = size_gb * EBS_GB_PRICES.get(volume_type, EBS_GB_PRICES["gp2"])
    iops = iops or 0
    throughput = throughput or 0

    if volume_type == "gp3":
        if iops > GP3_BASELINE_IOPS:
            cost += (iops - GP3_BASELINE_IOPS) * GP3_IOPS_PRICE
        if throughput > GP3_BASELINE_THROUGHPUT:
            cost += (throughput - GP3_BASELINE_THROUGHPUT) * GP3_THROUGHPUT_PRICE
    elif volume_type == "io1":
        cost += iops * IO1_IOPS_PRICE
    elif volume_type == "io2":
        cost += _io2_iops_cost(iops)

    return round(cost, 2)
