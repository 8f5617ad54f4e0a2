# leafly/api/leaderboard/services.py
from typing import Dict, Any, List

from leafly.models.user import User
from leafly.models.eco_action import level_for


class LeaderboardService:
    """
    포인트 기반 리더보드.
    동점자는 같은 순위를 가지며(1, 1, 3 ...), 표시 순서는 username 알파벳 순입니다.
    """
    def __init__(self, database, points_per_level: int = 100, max_size: int = 100):
        self.users_ref = database.child('users')
        self.points_per_level = points_per_level
        self.max_size = max_size

    def _entry(self, user: User, rank: int) -> Dict[str, Any]:
        return {
            "rank": rank,
            "user_id": user.user_id,
            "username": user.username,
            "profile_image_url": user.profile_image_url,
            "points": user.points,
            "level": level_for(user.points, self.points_per_level),
        }

    @staticmethod
    def _from_snapshot(snapshot) -> List[User]:
        if not isinstance(snapshot, dict):
            return []
        return [User.from_record(uid, data) for uid, data in snapshot.items() if isinstance(data, dict)]

    def get_top_users(self, limit: int) -> List[Dict[str, Any]]:
        """포인트 상위 limit명의 사용자를 순위와 함께 반환합니다."""
        limit = max(1, min(limit, self.max_size))
        users = self._from_snapshot(self.users_ref.order_by_child('points').limit_to_last(limit).get())
        if len(users) == limit:
            # limit_to_last는 동점자를 uid 순으로 자르므로, 경계 점수의 동점자를 모두 다시 가져옵니다.
            cutoff = min(u.points for u in users)
            tied = self._from_snapshot(self.users_ref.order_by_child('points').start_at(cutoff).get())
            users = list({u.user_id: u for u in users + tied}.values())

        users.sort(key=lambda u: (-u.points, u.username.lower(), u.user_id))
        users = users[:limit]

        entries = []
        for index, user in enumerate(users):
            if index > 0 and user.points == users[index - 1].points:
                rank = entries[-1]["rank"]
            else:
                rank = index + 1
            entries.append(self._entry(user, rank))
        return entries

    def get_user_rank(self, user_id: str) -> Dict[str, Any]:
        """
        특정 사용자의 순위 (1 + 자신보다 포인트가 많은 사용자 수).

        :raises LookupError: 사용자가 없는 경우
        """
        data = self.users_ref.child(user_id).get()
        if not isinstance(data, dict):
            raise LookupError("User not found.")
        user = User.from_record(user_id, data)

        higher = self.users_ref.order_by_child('points').start_at(user.points + 1).get()
        higher_count = len(higher) if isinstance(higher, dict) else 0
        return self._entry(user, higher_count + 1)
