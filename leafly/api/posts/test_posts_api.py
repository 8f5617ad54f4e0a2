# leafly/api/posts/test_posts_api.py


def _create(client, headers, **overrides):
    body = {"text": "Carried a tote bag", "category": "reusable"}
    body.update(overrides)
    return client.post('/api/posts/', json=body, headers=headers)


def test_create_and_read_post(client, make_user, auth_headers):
    make_user('u1', username='forest')
    headers = auth_headers('u1')

    response = _create(client, headers)

    assert response.status_code == 201
    post = response.get_json()
    assert post["category"] == "reusable"
    assert post["points"] == 10
    assert post["created_at"].endswith('Z')

    detail = client.get(f"/api/posts/{post['post_id']}")
    assert detail.status_code == 200
    assert detail.get_json()["username"] == "forest"


def test_create_post_validation(client, make_user, auth_headers):
    make_user('u1')
    headers = auth_headers('u1')

    assert _create(client, headers, category="littering").status_code == 400
    assert _create(client, headers, text="").status_code == 400
    assert client.post('/api/posts/', json={"text": "x", "category": "other"}).status_code == 401


def test_create_post_with_missing_upload(client, make_user, auth_headers):
    make_user('u1')
    response = _create(client, auth_headers('u1'), file_path='posts/u1/nothing.jpg')
    assert response.status_code == 404


def test_feed_scopes(client, make_user, auth_headers):
    make_user('u1')
    make_user('u2')
    _create(client, auth_headers('u2'))

    everyone = client.get('/api/posts/').get_json()
    assert len(everyone["posts"]) == 1
    assert everyone["next_cursor"] is None

    following = client.get('/api/posts/?scope=following', headers=auth_headers('u1')).get_json()
    assert following["posts"] == []

    assert client.get('/api/posts/?scope=following').status_code == 401
    assert client.get('/api/posts/?scope=popular').status_code == 400


def test_like_update_delete_flow(client, make_user, auth_headers):
    make_user('u1')
    make_user('u2')
    post_id = _create(client, auth_headers('u1')).get_json()["post_id"]

    liked = client.post(f"/api/posts/{post_id}/like", headers=auth_headers('u2'))
    assert liked.get_json() == {"post_id": post_id, "is_liked": True, "likes": 1}
    assert client.post('/api/posts/nope/like', headers=auth_headers('u2')).status_code == 404

    assert client.patch(f"/api/posts/{post_id}", json={"text": "mine now"},
                        headers=auth_headers('u2')).status_code == 403
    assert client.patch(f"/api/posts/{post_id}", json={"text": "Carried two tote bags"},
                        headers=auth_headers('u1')).status_code == 200

    assert client.delete(f"/api/posts/{post_id}", headers=auth_headers('u2')).status_code == 403
    assert client.delete(f"/api/posts/{post_id}", headers=auth_headers('u1')).status_code == 204
    assert client.get(f"/api/posts/{post_id}").status_code == 404


def test_user_posts_endpoint(client, make_user, auth_headers):
    make_user('u1')
    _create(client, auth_headers('u1'))
    _create(client, auth_headers('u1'), category="energy")

    body = client.get('/api/posts/users/u1/posts?limit=1').get_json()

    assert len(body["posts"]) == 1
    assert client.get('/api/posts/users/nobody/posts').get_json()["posts"] == []


def test_upload_url_endpoint(client, auth_headers):
    response = client.post('/api/uploads/url', json={
        "upload_type": "post_image", "filename": "leaf.png", "content_type": "image/png"
    }, headers=auth_headers('u1'))

    assert response.status_code == 200
    assert response.get_json()["file_path"].startswith('posts/u1/')

    bad = client.post('/api/uploads/url', json={
        "upload_type": "post_image", "filename": "notes.txt", "content_type": "text/plain"
    }, headers=auth_headers('u1'))
    assert bad.status_code == 400


def test_health_and_unknown_route(client):
    assert client.get('/api/health').get_json() == {"status": "ok"}
    assert client.get('/api/nowhere').status_code == 404


def test_feed_cursor_accepts_created_at(client, database):
    for index, timestamp in enumerate([1738843200000, 1738843260000, 1738843320000]):
        database.child(f"posts/p{index}").set({"userId": "u1", "text": "x", "category": "other", "points": 5,
                                               "likes": 0, "commentsCount": 0, "timestamp": timestamp})

    first = client.get('/api/posts/?limit=1').get_json()
    assert first["posts"][0]["post_id"] == "p2"

    by_iso = client.get(f"/api/posts/?limit=1&cursor={first['posts'][0]['created_at']}").get_json()
    by_ms = client.get(f"/api/posts/?limit=1&cursor={first['next_cursor']}").get_json()
    assert by_iso["posts"][0]["post_id"] == by_ms["posts"][0]["post_id"] == "p1"

    assert client.get('/api/posts/?cursor=yesterday').status_code == 400
