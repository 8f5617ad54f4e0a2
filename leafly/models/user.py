# leafly/models/user.py
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from leafly.utils.datetime_utils import DateTimeUtils

UNKNOWN_USERNAME = "Unknown"


@dataclass
class User:
    """
    Realtime Database 'users/{uid}' 노드의 구조를 정의하는 데이터클래스.
    팔로워/팔로잉 맵은 하위 노드로 따로 관리하므로 여기에 포함하지 않습니다.
    """
    user_id: str
    username: str
    email: str
    profile_image_url: Optional[str] = None
    points: int = 0
    created_at: int = field(default_factory=DateTimeUtils.now_ms)

    def to_record(self) -> Dict[str, Any]:
        """DB에 저장할 camelCase 딕셔너리로 변환합니다. (None 값은 저장하지 않음)"""
        record = {
            "username": self.username,
            "email": self.email,
            "points": self.points,
            "createdAt": self.created_at,
        }
        if self.profile_image_url:
            record["profileImageUrl"] = self.profile_image_url
        return record

    @classmethod
    def from_record(cls, user_id: str, data: Optional[Dict[str, Any]]) -> "User":
        """DB 노드로부터 인스턴스를 생성합니다. 누락된 필드는 기본값으로 채웁니다."""
        data = data or {}
        return cls(
            user_id=user_id,
            username=data.get("username") or UNKNOWN_USERNAME,
            email=data.get("email") or "",
            profile_image_url=data.get("profileImageUrl"),
            points=int(data.get("points") or 0),
            created_at=data.get("createdAt") or 0,
        )
