# leafly/api/posts/test_post_service.py
import pytest

from leafly.models.post import Post


@pytest.fixture
def post_service(app):
    return app.services['posts']


@pytest.fixture
def seed_post(database):
    """timestamp를 직접 지정해 게시글을 저장합니다."""
    def _seed_post(post_id, user_id, timestamp, category='recycling', points=10):
        post = Post(post_id=post_id, user_id=user_id, text=f"post {post_id}", category=category,
                    points=points, timestamp=timestamp)
        database.child('posts').child(post_id).set(post.to_record())
        return post
    return _seed_post


def test_create_post_awards_category_points(post_service, make_user, database):
    make_user('u1', points=5)

    post = post_service.create_post('u1', 'Biked to school', 'transport')

    assert post["points"] == 20
    assert post["likes"] == 0
    assert post["comments_count"] == 0
    assert post["username"] == 'u1'
    assert database.child('users/u1/points').get() == 25
    assert database.child('posts').child(post["post_id"]).child('userID').get() == 'u1'


def test_create_post_rejects_unknown_category_and_missing_user(post_service, make_user):
    make_user('u1')
    with pytest.raises(ValueError):
        post_service.create_post('u1', 'hello', 'littering')
    with pytest.raises(LookupError):
        post_service.create_post('ghost', 'hello', 'recycling')


def test_create_post_with_uploaded_image(post_service, make_user, bucket):
    make_user('u1')
    bucket.files.add('posts/u1/bottle.jpg')

    post = post_service.create_post('u1', 'Sorted bottles', 'recycling', file_path='posts/u1/bottle.jpg')

    assert post["image_url"] == f"https://storage.googleapis.com/{bucket.name}/posts/u1/bottle.jpg"
    assert 'posts/u1/bottle.jpg' in bucket.public


def test_feed_is_newest_first_with_cursor(post_service, seed_post):
    for index in range(5):
        seed_post(f"p{index}", 'u1', timestamp=1000 + index)

    first, cursor = post_service.get_posts(None, limit=2, cursor=None)
    assert [p["post_id"] for p in first] == ["p4", "p3"]
    assert cursor == 1003

    second, cursor = post_service.get_posts(None, limit=2, cursor=cursor)
    assert [p["post_id"] for p in second] == ["p2", "p1"]

    last, cursor = post_service.get_posts(None, limit=2, cursor=cursor)
    assert [p["post_id"] for p in last] == ["p0"]
    assert cursor is None


def test_following_feed_only_has_followed_authors_and_self(app, post_service, make_user, seed_post):
    for user_id in ('me', 'friend', 'stranger'):
        make_user(user_id)
    app.services['follows'].toggle_follow('me', 'friend')
    seed_post('mine', 'me', 10)
    seed_post('friends', 'friend', 20)
    seed_post('strangers', 'stranger', 30)

    posts, next_cursor = post_service.get_following_posts('me', limit=10, cursor=None)

    assert [p["post_id"] for p in posts] == ["friends", "mine"]
    assert next_cursor is None


def test_posts_by_user(post_service, seed_post):
    seed_post('a1', 'alice', 1)
    seed_post('a2', 'alice', 2)
    seed_post('b1', 'bob', 3)

    posts, _ = post_service.get_posts_by_user_id('alice', None, limit=10, cursor=None)

    assert [p["post_id"] for p in posts] == ["a2", "a1"]
    assert post_service.count_posts_by_user_id('alice') == 2
    assert post_service.count_posts_by_user_id('nobody') == 0


def test_like_toggles_and_counts(post_service, seed_post, database):
    seed_post('p1', 'author', 1)

    assert post_service.toggle_post_like('fan', 'p1') == {"post_id": "p1", "is_liked": True, "likes": 1}
    assert post_service.toggle_post_like('fan2', 'p1')["likes"] == 2
    assert post_service.get_post_by_id('p1', 'fan')["is_liked"] is True

    assert post_service.toggle_post_like('fan', 'p1') == {"post_id": "p1", "is_liked": False, "likes": 1}
    assert database.child('posts/p1/likedBy').get() == {"fan2": True}


def test_like_count_never_goes_negative(post_service, database):
    database.child('posts/p1').set({"userId": "author", "text": "x", "category": "other", "points": 5,
                                    "likes": 0, "commentsCount": 0, "timestamp": 1,
                                    "likedBy": {"fan": True}})

    result = post_service.toggle_post_like('fan', 'p1')

    assert result == {"post_id": "p1", "is_liked": False, "likes": 0}


def test_like_missing_post(post_service):
    with pytest.raises(LookupError):
        post_service.toggle_post_like('fan', 'nope')


def test_only_author_can_update_or_delete(post_service, make_user):
    make_user('u1')
    post = post_service.create_post('u1', 'Turned off lights', 'energy')

    with pytest.raises(PermissionError):
        post_service.update_post(post["post_id"], 'u2', 'hacked')
    with pytest.raises(PermissionError):
        post_service.delete_post(post["post_id"], 'u2')
    with pytest.raises(LookupError):
        post_service.update_post('missing', 'u1', 'text')

    updated = post_service.update_post(post["post_id"], 'u1', 'Turned off all the lights')
    assert updated["text"] == 'Turned off all the lights'
    assert updated["updated_at"] is not None


def test_delete_post_takes_back_points_and_image(post_service, make_user, bucket, database):
    make_user('u1', points=3)
    bucket.files.add('posts/u1/tree.png')
    post = post_service.create_post('u1', 'Planted a tree', 'planting', file_path='posts/u1/tree.png')
    assert database.child('users/u1/points').get() == 28

    database.child('users/u1/points').set(10)
    post_service.delete_post(post["post_id"], 'u1')

    assert post_service.get_post_by_id(post["post_id"], None) is None
    # 포인트는 0 아래로 내려가지 않습니다.
    assert database.child('users/u1/points').get() == 0
    assert bucket.deleted == ['posts/u1/tree.png']


def test_app_written_and_authorless_posts_render(post_service, make_user, database):
    make_user('u1', username='forest')
    database.child('posts/app').set({"userID": "u1", "text": "from the app", "category": "recycling",
                                     "points": 10, "likes": 0, "commentsCount": 0, "timestamp": 2})
    database.child('posts/older').set({"userId": "u1", "text": "older server", "category": "energy",
                                       "points": 15, "likes": 0, "commentsCount": 0, "timestamp": 1})
    database.child('posts/orphan').set({"text": "no author", "category": "other", "points": 5,
                                        "likes": 0, "commentsCount": 0, "timestamp": 3})

    posts, _ = post_service.get_posts(None, limit=10, cursor=None)

    assert [(p["post_id"], p["username"]) for p in posts] == [
        ("orphan", "Unknown"), ("app", "forest"), ("older", "forest")
    ]
    assert post_service.get_post_by_id('orphan', None)["user_id"] == ""

    by_author, _ = post_service.get_posts_by_user_id('u1', None, limit=10, cursor=None)
    assert {p["post_id"] for p in by_author} == {"app", "older"}
    assert post_service.count_posts_by_user_id('u1') == 2


def test_points_are_not_written_for_deleted_author(post_service, make_user, database):
    make_user('u1')
    post = post_service.create_post('u1', 'Biked to work', 'transport')
    database.child('users/u1').delete()

    post_service.delete_post(post["post_id"], 'u1')

    assert database.child('users/u1').get() is None
