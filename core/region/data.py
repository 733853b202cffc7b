# core/region/data.py - 리전 데이터
"""
정적 리전 데이터

- REGION_NAMES: 리전 코드 → 표시 이름
- SNAPSHOT_REGIONS: EBS 스냅샷 조회 기본 대상 리전
"""

REGION_NAMES: dict[str, str] = {
    "us-east-1": "미국 동부 (버지니아 북부)",
    "us-east-2": "미국 동부 (오하이오)",
    "us-west-1": "미국 서부 (캘리포니아)",
    "us-west-2": "미국 서부 (오레곤)",
    "ca-central-1": "캐나다 (중부)",
    "sa-east-1": "남아메리카 (상파울루)",
    "eu-west-1": "유럽 (아일랜드)",
    "eu-west-2": "유럽 (런던)",
    "eu-west-3": "유럽 (파리)",
    "eu-central-1": "유럽 (프랑크푸르트)",
    "eu-north-1": "유럽 (스톡홀름)",
    "ap-south-1": "아시아 태평양 (뭄바이)",
    "ap-southeast-1": "아시아 태평양 (싱가포르)",
    "ap-southeast-2": "아시아 태평양 (시드니)",
    "ap-northeast-1": "아시아 태평양 (도쿄)",
    "ap-northeast-2": "아시아 태평양 (서울)",
    "ap-northeast-3": "아시아 태평양 (오사카)",
}

# 옵트인 리전을 제외한 16개 리전
SNAPSHOT_REGIONS: tuple[str, ...] = (
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "eu-central-1",
    "eu-north-1",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-south-1",
    "sa-east-1",
    "ca-central-1",
)
