# leafly/api/posts/services.py
import logging
import uuid
from typing import Optional, Dict, Any, Tuple, List, Iterable

from leafly.models.post import Post, AUTHOR_KEY, LEGACY_AUTHOR_KEY
from leafly.models.user import UNKNOWN_USERNAME
from leafly.models.eco_action import points_for
from leafly.services.storage_service import StorageService
from leafly.utils.datetime_utils import DateTimeUtils


class PostService:
    """
    게시글(친환경 활동 인증) 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - posts/{post_id} 노드의 likes, commentsCount와 users/{uid}/points는
      역정규화된 카운터이며 모두 트랜잭션으로 갱신합니다.
    """
    def __init__(self, database, storage_service: StorageService, follow_service, max_page_size: int = 50):
        self.root = database
        self.posts_ref = database.child('posts')
        self.users_ref = database.child('users')
        self.storage_service = storage_service
        self.follow_service = follow_service
        self.max_page_size = max_page_size

    # --- 내부 헬퍼 ---
    def _clamp_limit(self, limit: int) -> int:
        return max(1, min(limit, self.max_page_size))

    def _adjust_points(self, user_id: str, delta: int) -> Optional[int]:
        """작성자 포인트를 delta만큼 조정합니다. 0 아래로 내려가지 않으며, 탈퇴한 사용자는 건너뜁니다."""
        # 탈퇴한 사용자의 노드는 다시 만들지 않습니다.
        def _apply(user):
            if not isinstance(user, dict):
                return user
            user['points'] = max(int(user.get('points') or 0) + delta, 0)
            return user

        updated = self.users_ref.child(user_id).transaction(_apply)
        return updated.get('points') if isinstance(updated, dict) else None

    def _authors(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        authors = {}
        for user_id in set(user_ids):
            if not user_id:
                # 작성자 정보가 없는 게시글
                authors[user_id] = {"username": UNKNOWN_USERNAME, "profile_image_url": None}
                continue
            data = self.users_ref.child(user_id).get()
            data = data if isinstance(data, dict) else {}
            authors[user_id] = {
                "username": data.get("username") or UNKNOWN_USERNAME,
                "profile_image_url": data.get("profileImageUrl"),
            }
        return authors

    def _to_response(self, posts: List[Post], viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        """게시글 목록에 작성자 정보와 viewer의 좋아요 여부를 채워 응답용 딕셔너리로 변환합니다."""
        authors = self._authors(p.user_id for p in posts)
        results = []
        for post in posts:
            author = authors.get(post.user_id, {"username": UNKNOWN_USERNAME, "profile_image_url": None})
            results.append({
                "post_id": post.post_id,
                "user_id": post.user_id,
                "username": author["username"],
                "profile_image_url": author["profile_image_url"],
                "text": post.text,
                "image_url": post.image_url,
                "category": post.category,
                "points": post.points,
                "likes": post.likes,
                "comments_count": post.comments_count,
                "is_liked": post.is_liked_by(viewer_id),
                "timestamp": post.timestamp,
                "created_at": DateTimeUtils.ms_to_iso(post.timestamp),
                "updated_at": DateTimeUtils.ms_to_iso(post.updated_at),
            })
        return results

    @staticmethod
    def _from_snapshot(snapshot) -> List[Post]:
        if not isinstance(snapshot, dict):
            return []
        return [Post.from_record(key, value) for key, value in snapshot.items() if isinstance(value, dict)]

    @staticmethod
    def _newest_first(posts: List[Post]) -> List[Post]:
        return sorted(posts, key=lambda p: (p.timestamp, p.post_id), reverse=True)

    @staticmethod
    def _paginate(posts: List[Post], limit: int) -> Tuple[List[Post], Optional[int]]:
        """최신순으로 정렬된 목록에서 한 페이지를 잘라내고, 다음 페이지 커서(timestamp)를 계산합니다."""
        page = posts[:limit]
        next_cursor = page[-1].timestamp if len(posts) > limit and page else None
        return page, next_cursor

    def _posts_by_author(self, author_id: str) -> List[Post]:
        if not author_id:
            return []
        posts = {}
        for key in (AUTHOR_KEY, LEGACY_AUTHOR_KEY):
            snapshot = self.posts_ref.order_by_child(key).equal_to(author_id).get()
            for post in self._from_snapshot(snapshot):
                posts[post.post_id] = post
        return list(posts.values())

    # --- 생성 ---
    def create_post(self, user_id: str, text: str, category: str, file_path: Optional[str] = None) -> Dict[str, Any]:
        """
        새로운 게시글을 생성하고 카테고리 포인트를 작성자에게 지급합니다.

        :raises ValueError: 알 수 없는 카테고리
        :raises LookupError: 작성자 레코드가 없는 경우
        :raises FileNotFoundError / PermissionError: 첨부 이미지 경로가 잘못된 경우
        """
        points = points_for(category)
        if self.users_ref.child(user_id).get(shallow=True) is None:
            raise LookupError("User not found.")

        image_url = None
        if file_path:
            image_url = self.storage_service.make_public_and_get_url(file_path, user_id=user_id)

        try:
            new_post = Post(
                post_id=str(uuid.uuid4()),
                user_id=user_id,
                text=text,
                category=category,
                points=points,
                image_url=image_url,
            )
            self.posts_ref.child(new_post.post_id).set(new_post.to_record())
            self._adjust_points(user_id, points)
            logging.info(f"게시글 생성 (post_id: {new_post.post_id}, user_id: {user_id}, points: {points})")
            return self._to_response([new_post], user_id)[0]
        except Exception as e:
            logging.error(f"게시글 생성 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

    # --- 조회 ---
    def get_posts(self, viewer_id: Optional[str], limit: int, cursor: Optional[int]) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        """
        전체 피드를 최신순으로 조회합니다.

        :param cursor: 이전 페이지의 next_cursor (이 timestamp보다 오래된 게시물부터 조회)
        """
        limit = self._clamp_limit(limit)
        query = self.posts_ref.order_by_child('timestamp')
        if cursor is not None:
            query = query.end_at(cursor - 1)
        snapshot = query.limit_to_last(limit + 1).get()

        posts, next_cursor = self._paginate(self._newest_first(self._from_snapshot(snapshot)), limit)
        return self._to_response(posts, viewer_id), next_cursor

    def get_following_posts(self, viewer_id: str, limit: int, cursor: Optional[int]) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        """팔로우 중인 사용자와 본인의 게시물만 최신순으로 조회합니다."""
        limit = self._clamp_limit(limit)
        author_ids = self.follow_service.following_ids(viewer_id) | {viewer_id}

        posts = []
        for author_id in author_ids:
            posts.extend(self._posts_by_author(author_id))
        if cursor is not None:
            posts = [p for p in posts if p.timestamp < cursor]

        page, next_cursor = self._paginate(self._newest_first(posts), limit)
        return self._to_response(page, viewer_id), next_cursor

    def get_posts_by_user_id(self, author_id: str, viewer_id: Optional[str], limit: int,
                             cursor: Optional[int]) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        """특정 사용자가 작성한 게시물 목록을 최신순으로 조회합니다."""
        limit = self._clamp_limit(limit)
        try:
            posts = self._posts_by_author(author_id)
            if cursor is not None:
                posts = [p for p in posts if p.timestamp < cursor]
            page, next_cursor = self._paginate(self._newest_first(posts), limit)
            return self._to_response(page, viewer_id), next_cursor
        except Exception as e:
            logging.error(f"사용자 게시물 목록 조회 실패 (author_id: {author_id}): {e}", exc_info=True)
            raise

    def count_posts_by_user_id(self, author_id: str) -> int:
        """특정 사용자가 작성한 게시물 수를 반환합니다."""
        return len(self._posts_by_author(author_id))

    def get_post_by_id(self, post_id: str, viewer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        data = self.posts_ref.child(post_id).get()
        if not isinstance(data, dict):
            return None
        return self._to_response([Post.from_record(post_id, data)], viewer_id)[0]

    # --- 수정/삭제 ---
    def _get_owned_post(self, post_id: str, user_id: str) -> Post:
        data = self.posts_ref.child(post_id).get()
        if not isinstance(data, dict):
            raise LookupError("Post not found.")
        post = Post.from_record(post_id, data)
        if post.user_id != user_id:
            raise PermissionError("Only the author can modify this post.")
        return post

    def update_post(self, post_id: str, user_id: str, text: str) -> Dict[str, Any]:
        """게시글 본문을 수정합니다. (작성자 본인만 가능)"""
        self._get_owned_post(post_id, user_id)
        self.posts_ref.child(post_id).update({"text": text, "updatedAt": DateTimeUtils.now_ms()})
        return self.get_post_by_id(post_id, user_id)

    def delete_post(self, post_id: str, user_id: str) -> None:
        """
        게시글과 하위 댓글을 삭제하고, 지급했던 포인트를 회수합니다. (작성자 본인만 가능)
        첨부 이미지 삭제는 best-effort로 처리합니다.
        """
        post = self._get_owned_post(post_id, user_id)
        self.posts_ref.child(post_id).delete()
        self._adjust_points(user_id, -post.points)
        if post.image_url:
            self.storage_service.delete_by_url(post.image_url)
        logging.info(f"게시글 삭제 (post_id: {post_id}, user_id: {user_id}, points: -{post.points})")

    # --- 좋아요 ---
    def toggle_post_like(self, user_id: str, post_id: str) -> Dict[str, Any]:
        """
        트랜잭션 내에서 게시글 좋아요 상태를 토글합니다.
        - likedBy/{uid}를 추가/삭제하고 likes를 증가/감소시킵니다. (0 미만으로 내려가지 않음)

        :raises LookupError: 게시글이 없는 경우
        """
        def _toggle(post):
            if not isinstance(post, dict):
                raise LookupError("Post not found.")
            liked_by = dict(post.get('likedBy') or {})
            likes = int(post.get('likes') or 0)
            if liked_by.get(user_id) is True:
                liked_by.pop(user_id)
                likes -= 1
            else:
                liked_by[user_id] = True
                likes += 1
            post['likedBy'] = liked_by
            post['likes'] = max(likes, 0)
            return post

        try:
            updated = self.posts_ref.child(post_id).transaction(_toggle)
        except LookupError:
            raise
        except Exception as e:
            logging.error(f"게시글 좋아요 토글 실패 (user_id: {user_id}, post_id: {post_id}): {e}", exc_info=True)
            raise

        return {
            "post_id": post_id,
            "is_liked": (updated.get('likedBy') or {}).get(user_id) is True,
            "likes": updated.get('likes', 0),
        }
