# leafly/models/post.py
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from leafly.utils.datetime_utils import DateTimeUtils


# 작성자 uid 키. 앱은 "userID"로 기록하며, 이전 서버 버전은 "userId"로 기록했습니다.
AUTHOR_KEY = "userID"
LEGACY_AUTHOR_KEY = "userId"


@dataclass
class Post:
    """
    Realtime Database 'posts/{post_id}' 노드의 구조를 정의하는 데이터클래스.
    likes, comments_count는 역정규화된 카운터이며 트랜잭션으로만 갱신합니다.
    """
    post_id: str
    user_id: str
    text: str
    category: str
    points: int
    image_url: Optional[str] = None
    likes: int = 0
    liked_by: Dict[str, bool] = field(default_factory=dict)
    comments_count: int = 0
    timestamp: int = field(default_factory=DateTimeUtils.now_ms)
    updated_at: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        record = {
            AUTHOR_KEY: self.user_id,
            "text": self.text,
            "category": self.category,
            "points": self.points,
            "likes": self.likes,
            "commentsCount": self.comments_count,
            "timestamp": self.timestamp,
        }
        if self.image_url:
            record["imageUrl"] = self.image_url
        if self.liked_by:
            record["likedBy"] = dict(self.liked_by)
        if self.updated_at is not None:
            record["updatedAt"] = self.updated_at
        return record

    @classmethod
    def from_record(cls, post_id: str, data: Optional[Dict[str, Any]]) -> "Post":
        """앱과 동일하게 누락된 값은 빈 문자열/'Unknown'/0으로 대체합니다."""
        data = data or {}
        return cls(
            post_id=post_id,
            user_id=data.get(AUTHOR_KEY) or data.get(LEGACY_AUTHOR_KEY) or "",
            text=data.get("text") or "",
            category=data.get("category") or "Unknown",
            points=int(data.get("points") or 0),
            image_url=data.get("imageUrl"),
            likes=int(data.get("likes") or 0),
            liked_by=dict(data.get("likedBy") or {}),
            comments_count=int(data.get("commentsCount") or 0),
            timestamp=data.get("timestamp") or 0,
            updated_at=data.get("updatedAt"),
        )

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.liked_by.get(user_id) is True
