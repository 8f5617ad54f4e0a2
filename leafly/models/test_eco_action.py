# leafly/models/test_eco_action.py
import pytest

from leafly.models.eco_action import EcoCategory, CATEGORY_POINTS, points_for, level_for, level_progress
from leafly.models.post import Post
from leafly.models.user import User, UNKNOWN_USERNAME


def test_every_category_awards_points():
    assert set(CATEGORY_POINTS) == set(EcoCategory)
    assert all(points > 0 for points in CATEGORY_POINTS.values())


def test_points_for_known_and_unknown_category():
    assert points_for("reusable") == 10
    assert points_for("upcycling") == 50
    with pytest.raises(ValueError):
        points_for("littering")


def test_level_starts_at_one_and_steps_every_hundred_points():
    assert level_for(0, 100) == 1
    assert level_for(99, 100) == 1
    assert level_for(100, 100) == 2
    assert level_for(2650, 100) == 27


def test_level_progress_within_current_level():
    assert level_progress(0, 100) == 0.0
    assert level_progress(150, 100) == 0.5
    assert level_progress(-20, 100) == 0.0


def test_post_from_record_defaults_missing_fields():
    post = Post.from_record("p1", {"userId": "u1"})

    assert post.text == ""
    assert post.category == "Unknown"
    assert post.likes == 0
    assert post.comments_count == 0
    assert post.is_liked_by("u1") is False


def test_post_record_omits_empty_optional_fields():
    record = Post(post_id="p1", user_id="u1", text="Bus to work", category="transport", points=20).to_record()

    assert "imageUrl" not in record
    assert "likedBy" not in record
    assert record["likes"] == 0
    assert record["commentsCount"] == 0


def test_user_from_missing_record_is_unknown():
    user = User.from_record("ghost", None)
    assert user.username == UNKNOWN_USERNAME
    assert user.points == 0


def test_post_author_key_matches_app():
    post = Post(post_id="p1", user_id="u1", text="t", category="other", points=5)

    assert post.to_record()["userID"] == "u1"
    assert Post.from_record("p1", {"userID": "u1"}).user_id == "u1"
    assert Post.from_record("p1", {"userId": "u1"}).user_id == "u1"
    assert Post.from_record("p1", {}).user_id == ""
