# leafly/models/eco_action.py
from enum import Enum


class EcoCategory(Enum):
    """게시글로 인증할 수 있는 친환경 활동 유형"""
    REUSABLE = "reusable"      # 장바구니, 텀블러 등 재사용
    RECYCLING = "recycling"
    TRANSPORT = "transport"    # 도보, 자전거, 대중교통
    ENERGY = "energy"
    PLANTING = "planting"
    UPCYCLING = "upcycling"    # 헌 옷 리폼 등
    OTHER = "other"


# 활동 유형별 지급 포인트
CATEGORY_POINTS = {
    EcoCategory.REUSABLE: 10,
    EcoCategory.RECYCLING: 10,
    EcoCategory.TRANSPORT: 20,
    EcoCategory.ENERGY: 15,
    EcoCategory.PLANTING: 25,
    EcoCategory.UPCYCLING: 50,
    EcoCategory.OTHER: 5,
}


def points_for(category: str) -> int:
    """카테고리 문자열에 해당하는 포인트를 반환합니다. 알 수 없는 값이면 ValueError."""
    try:
        return CATEGORY_POINTS[EcoCategory(category)]
    except ValueError:
        raise ValueError(f"Unknown eco-action category: '{category}'")


def level_for(points: int, points_per_level: int) -> int:
    """포인트로부터 레벨을 계산합니다. 0점은 레벨 1입니다."""
    return max(points, 0) // points_per_level + 1


def level_progress(points: int, points_per_level: int) -> float:
    """현재 레벨 안에서의 진행률 (0.0 이상 1.0 미만)"""
    level = level_for(points, points_per_level)
    current_level_points = (level - 1) * points_per_level
    return (max(points, 0) - current_level_points) / points_per_level
