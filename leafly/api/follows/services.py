# leafly/api/follows/services.py
import logging
from typing import Set, Dict, Any


class FollowService:
    """
    팔로우 관계를 담당하는 서비스 클래스.
    관계는 양방향 맵으로 저장합니다:
    - users/{uid}/following/{target_uid}: true
    - users/{target_uid}/followers/{uid}: true
    팔로워/팔로잉 수는 별도 카운터 없이 맵의 크기로 계산합니다.
    """
    def __init__(self, database):
        self.root = database
        self.users_ref = database.child('users')

    def _ids(self, user_id: str, relation: str) -> Set[str]:
        data = self.users_ref.child(user_id).child(relation).get(shallow=True)
        if not isinstance(data, dict):
            return set()
        return set(data.keys())

    def following_ids(self, user_id: str) -> Set[str]:
        return self._ids(user_id, 'following')

    def follower_ids(self, user_id: str) -> Set[str]:
        return self._ids(user_id, 'followers')

    def is_following(self, user_id: str, target_id: str) -> bool:
        return self.users_ref.child(user_id).child('following').child(target_id).get() is True

    def toggle_follow(self, user_id: str, target_id: str) -> Dict[str, Any]:
        """
        팔로우/언팔로우를 전환합니다. 두 방향의 맵은 하나의 multi-path update로 함께 갱신됩니다.

        :raises ValueError: 자기 자신을 팔로우하려는 경우
        :raises LookupError: 대상 사용자가 없는 경우
        :return: 전환 후 팔로우 여부와 대상의 팔로워 수
        """
        if user_id == target_id:
            raise ValueError("You cannot follow yourself.")
        if self.users_ref.child(target_id).get(shallow=True) is None:
            raise LookupError("User not found.")

        now_following = not self.is_following(user_id, target_id)
        value = True if now_following else None
        try:
            self.root.update({
                f"users/{user_id}/following/{target_id}": value,
                f"users/{target_id}/followers/{user_id}": value,
            })
        except Exception as e:
            logging.error(f"팔로우 전환 실패 (user_id: {user_id}, target_id: {target_id}): {e}", exc_info=True)
            raise

        logging.info(f"팔로우 상태 변경 ({user_id} -> {target_id}: {'follow' if now_following else 'unfollow'})")
        return {
            "user_id": target_id,
            "is_following": now_following,
            "followers_count": len(self.follower_ids(target_id)),
        }
