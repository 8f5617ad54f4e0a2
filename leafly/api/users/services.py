# leafly/api/users/services.py
import logging
from typing import Optional, Dict, Any, List, Iterable

from firebase_admin import auth as firebase_auth

from leafly.models.user import User, UNKNOWN_USERNAME
from leafly.models.eco_action import level_for, level_progress
from leafly.services.storage_service import StorageService
from leafly.utils.datetime_utils import DateTimeUtils


class UsernameTakenError(Exception):
    """다른 사용자가 이미 사용 중인 username입니다."""


class UserService:
    """
    사용자 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 다른 서비스와의 결합도를 낮추기 위해 DB 경로를 직접 참조합니다.
    - StorageService, PostService, FollowService는 의존성 주입을 통해 받습니다.
    """
    def __init__(self, database, storage_service: StorageService, post_service, follow_service,
                 points_per_level: int = 100):
        """
        :param database: Realtime Database 루트 Reference
        :param storage_service: 프로필 이미지 공개 전환에 사용
        :param post_service: 게시물 수 집계에 사용
        :param follow_service: 팔로우 관계 조회에 사용
        """
        self.root = database
        self.users_ref = database.child('users')
        self.usernames_ref = database.child('usernames')
        self.storage_service = storage_service
        self.post_service = post_service
        self.follow_service = follow_service
        self.points_per_level = points_per_level

    # --- username 점유 ---
    @staticmethod
    def _username_key(username: str) -> str:
        return username.strip().lower()

    def is_username_available(self, username: str, user_id: Optional[str] = None) -> bool:
        owner = self.usernames_ref.child(self._username_key(username)).get()
        return owner is None or owner == user_id

    def claim_username(self, username: str, user_id: str) -> None:
        """
        usernames/{소문자 username} 노드를 트랜잭션으로 점유합니다.
        이미 다른 uid가 점유하고 있으면 UsernameTakenError를 발생시킵니다.
        """
        def _claim(current_owner):
            if current_owner is None or current_owner == user_id:
                return user_id
            raise UsernameTakenError(f"The username '{username}' is already taken.")

        self.usernames_ref.child(self._username_key(username)).transaction(_claim)

    def release_username(self, username: str, user_id: str) -> None:
        """본인이 점유한 username만 해제합니다."""
        ref = self.usernames_ref.child(self._username_key(username))
        if ref.get() == user_id:
            ref.delete()

    # --- 조회 ---
    def get_user(self, user_id: str) -> Optional[User]:
        data = self.users_ref.child(user_id).get()
        if not isinstance(data, dict):
            return None
        return User.from_record(user_id, data)

    def create_user_record(self, user: User) -> User:
        self.users_ref.child(user.user_id).set(user.to_record())
        logging.info(f"사용자 레코드 생성 (user_id: {user.user_id})")
        return user

    def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        여러 사용자의 표시용 요약 정보(username, 프로필 이미지)를 조회합니다.
        레코드가 없는 사용자는 'Unknown'으로 표시합니다.
        """
        summaries = {}
        for user_id in set(user_ids):
            user = self.get_user(user_id)
            summaries[user_id] = {
                "user_id": user_id,
                "username": user.username if user else UNKNOWN_USERNAME,
                "profile_image_url": user.profile_image_url if user else None,
            }
        return summaries

    def get_user_profile(self, user_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        공개 프로필 정보(레벨, 팔로워/팔로잉 수, 게시물 수 포함)를 조회합니다.

        :param user_id: 조회할 사용자 ID
        :param viewer_id: 로그인한 사용자 ID (팔로우 여부 계산용, 선택)
        :raises LookupError: 사용자가 없는 경우
        """
        user = self.get_user(user_id)
        if user is None:
            raise LookupError("User not found.")

        try:
            profile = {
                "user_id": user.user_id,
                "username": user.username,
                "profile_image_url": user.profile_image_url,
                "points": user.points,
                "level": level_for(user.points, self.points_per_level),
                "level_progress": level_progress(user.points, self.points_per_level),
                "followers_count": len(self.follow_service.follower_ids(user_id)),
                "following_count": len(self.follow_service.following_ids(user_id)),
                "post_count": self.post_service.count_posts_by_user_id(user_id),
                "created_at": DateTimeUtils.ms_to_iso(user.created_at),
                "is_following": False,
            }
            if viewer_id and viewer_id != user_id:
                profile["is_following"] = self.follow_service.is_following(viewer_id, user_id)
            return profile
        except Exception as e:
            logging.error(f"사용자 프로필 조회 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

    def get_me(self, user_id: str) -> Dict[str, Any]:
        """본인 프로필. 공개 프로필에 email을 더해 반환합니다."""
        profile = self.get_user_profile(user_id)
        profile["email"] = self.get_user(user_id).email
        return profile

    # --- 수정 ---
    def update_profile(self, user_id: str, username: Optional[str] = None,
                       file_path: Optional[str] = None) -> Dict[str, Any]:
        """
        username 변경 및/또는 업로드된 프로필 이미지 적용.

        :raises LookupError: 사용자가 없는 경우
        :raises UsernameTakenError: 새 username이 이미 사용 중인 경우
        :raises FileNotFoundError: 업로드된 파일을 찾을 수 없는 경우
        """
        user = self.get_user(user_id)
        if user is None:
            raise LookupError("User not found.")

        updates = {}
        if file_path:
            updates["profileImageUrl"] = self.storage_service.make_public_and_get_url(file_path, user_id=user_id)

        old_username = user.username
        if username and username != old_username:
            self.claim_username(username, user_id)
            updates["username"] = username

        if updates:
            self.users_ref.child(user_id).update(updates)
            if "username" in updates and self._username_key(old_username) != self._username_key(username):
                self.release_username(old_username, user_id)
            logging.info(f"프로필 업데이트 완료 (user_id: {user_id}, fields: {sorted(updates)})")

        return self.get_me(user_id)

    # --- 팔로워/팔로잉 목록 ---
    def _list_users(self, user_ids: Iterable[str]) -> List[Dict[str, Any]]:
        summaries = list(self.get_summaries(user_ids).values())
        # 앱과 동일하게 username 대소문자 무시 알파벳 순
        summaries.sort(key=lambda s: (s["username"].lower(), s["user_id"]))
        return summaries

    def list_followers(self, user_id: str) -> List[Dict[str, Any]]:
        if self.get_user(user_id) is None:
            raise LookupError("User not found.")
        return self._list_users(self.follow_service.follower_ids(user_id))

    def list_following(self, user_id: str) -> List[Dict[str, Any]]:
        if self.get_user(user_id) is None:
            raise LookupError("User not found.")
        return self._list_users(self.follow_service.following_ids(user_id))

    # --- 회원 탈퇴 ---
    def delete_user_account(self, user_id: str) -> None:
        """
        Firebase Auth 사용자와 users/{uid} 레코드, username 점유, 팔로우 관계를 삭제합니다.
        작성한 게시물은 남겨두며, 작성자는 'Unknown'으로 표시됩니다.
        """
        try:
            firebase_auth.delete_user(user_id)
            logging.info(f"Firebase Auth 사용자 삭제 성공 (user_id: {user_id}).")
        except firebase_auth.UserNotFoundError:
            # 이미 없는 사용자이므로 DB 정리는 계속 진행합니다.
            logging.warning(f"Firebase Auth에서 이미 삭제된 사용자입니다 (user_id: {user_id}).")
        except Exception as e:
            logging.error(f"회원 탈퇴 처리 중 Firebase Auth 사용자 삭제 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

        user = self.get_user(user_id)
        updates = {f"users/{user_id}": None}
        for followed_id in self.follow_service.following_ids(user_id):
            updates[f"users/{followed_id}/followers/{user_id}"] = None
        for follower_id in self.follow_service.follower_ids(user_id):
            updates[f"users/{follower_id}/following/{user_id}"] = None
        if user and self.usernames_ref.child(self._username_key(user.username)).get() == user_id:
            updates[f"usernames/{self._username_key(user.username)}"] = None

        self.root.update(updates)
        logging.info(f"사용자 데이터 삭제 완료 (user_id: {user_id})")
