# leafly/models/comment.py
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from leafly.models.user import UNKNOWN_USERNAME
from leafly.utils.datetime_utils import DateTimeUtils


@dataclass
class Comment:
    """
    'posts/{post_id}/comments/{comment_id}' 노드의 구조를 정의하는 데이터클래스.
    작성 시점의 username을 함께 저장합니다.
    """
    comment_id: str
    post_id: str
    user_id: str
    username: str
    text: str
    timestamp: int = field(default_factory=DateTimeUtils.now_ms)

    def to_record(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "username": self.username,
            "text": self.text,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, post_id: str, comment_id: str, data: Optional[Dict[str, Any]]) -> "Comment":
        data = data or {}
        return cls(
            comment_id=comment_id,
            post_id=post_id,
            user_id=data.get("userId") or "",
            username=data.get("username") or UNKNOWN_USERNAME,
            text=data.get("text") or "",
            timestamp=data.get("timestamp") or 0,
        )
