# leafly/api/comments/services.py

import logging
import uuid
from dataclasses import asdict
from typing import Dict, Any, List

from leafly.models.comment import Comment
from leafly.models.post import Post
from leafly.models.user import UNKNOWN_USERNAME
from leafly.utils.datetime_utils import DateTimeUtils


class CommentService:
    """
    댓글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    댓글은 posts/{post_id}/comments/{comment_id} 아래에 저장되며,
    게시글의 commentsCount와 함께 하나의 트랜잭션으로 갱신됩니다.
    """
    def __init__(self, database):
        self.posts_ref = database.child('posts')
        self.users_ref = database.child('users')

    @staticmethod
    def _to_response(comment: Comment) -> Dict[str, Any]:
        data = asdict(comment)
        data["created_at"] = DateTimeUtils.ms_to_iso(comment.timestamp)
        return data

    def create_comment(self, post_id: str, author_id: str, text: str) -> Dict[str, Any]:
        """
        새로운 댓글을 작성합니다. 작성 시점의 username을 댓글에 함께 저장합니다.

        :raises LookupError: 게시글이 없는 경우
        """
        username = self.users_ref.child(author_id).child('username').get() or UNKNOWN_USERNAME
        new_comment = Comment(
            comment_id=str(uuid.uuid4()),
            post_id=post_id,
            user_id=author_id,
            username=username,
            text=text,
        )

        def _add_in_transaction(post):
            if not isinstance(post, dict):
                raise LookupError("The post you are commenting on does not exist.")
            comments = dict(post.get('comments') or {})
            comments[new_comment.comment_id] = new_comment.to_record()
            post['comments'] = comments
            post['commentsCount'] = int(post.get('commentsCount') or 0) + 1
            return post

        self.posts_ref.child(post_id).transaction(_add_in_transaction)
        logging.info(f"댓글 작성 (post_id: {post_id}, comment_id: {new_comment.comment_id})")
        return self._to_response(new_comment)

    def get_comments_for_post(self, post_id: str) -> List[Dict[str, Any]]:
        """
        게시글의 댓글 목록을 작성 순(오래된 순)으로 조회합니다.

        :raises LookupError: 게시글이 없는 경우
        """
        post = self.posts_ref.child(post_id).get()
        if not isinstance(post, dict):
            raise LookupError("Post not found.")

        comments = [
            Comment.from_record(post_id, comment_id, data)
            for comment_id, data in (post.get('comments') or {}).items()
            if isinstance(data, dict)
        ]
        comments.sort(key=lambda c: (c.timestamp, c.comment_id))
        return [self._to_response(c) for c in comments]

    def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> None:
        """
        댓글을 삭제합니다. 댓글 작성자 또는 게시글 작성자만 가능하며,
        commentsCount는 0 아래로 내려가지 않습니다.

        :raises LookupError: 게시글이나 댓글이 없는 경우
        :raises PermissionError: 삭제 권한이 없는 경우
        """
        def _delete_in_transaction(post):
            if not isinstance(post, dict):
                raise LookupError("Post not found.")
            comments = dict(post.get('comments') or {})
            comment = comments.get(comment_id)
            if not isinstance(comment, dict):
                raise LookupError("Comment not found.")
            if user_id not in (comment.get('userId'), Post.from_record(post_id, post).user_id):
                raise PermissionError("You are not allowed to delete this comment.")

            comments.pop(comment_id)
            post['comments'] = comments
            post['commentsCount'] = max(int(post.get('commentsCount') or 0) - 1, 0)
            return post

        try:
            self.posts_ref.child(post_id).transaction(_delete_in_transaction)
        except (LookupError, PermissionError):
            raise
        except Exception as e:
            logging.error(f"댓글 삭제 실패 (post_id: {post_id}, comment_id: {comment_id}): {e}", exc_info=True)
            raise
