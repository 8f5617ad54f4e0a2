# conftest.py
"""
공용 pytest 픽스처.

서비스들은 firebase_admin.db.Reference API(child/get/set/update/delete/transaction,
order_by_child 쿼리)만 사용하므로, 테스트에서는 같은 API를 가진 인메모리 트리를 주입합니다.
Storage 버킷도 같은 방식으로 대체합니다.
"""

import copy
from collections import OrderedDict

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from leafly import create_app
from leafly.models.user import User


def _split(path):
    return [segment for segment in (path or '').split('/') if segment]


def _normalize(value):
    """Realtime Database처럼 None 값과 빈 맵은 저장하지 않습니다."""
    if isinstance(value, dict):
        cleaned = {}
        for key, child in value.items():
            child = _normalize(child)
            if child is not None:
                cleaned[key] = child
        return cleaned or None
    return value


def _order_key(value):
    # null < false < true < 숫자 < 문자열 < 객체
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, 0)


class FakeDatabase:
    def __init__(self):
        self.data = {}

    def read(self, segments):
        node = self.data
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node if node != {} else None

    def write(self, segments, value):
        value = _normalize(copy.deepcopy(value))
        if not segments:
            self.data = value if isinstance(value, dict) else {}
            return
        node = self.data
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        if value is None:
            node.pop(segments[-1], None)
        else:
            node[segments[-1]] = value
        self.data = _normalize(self.data) or {}

    def reference(self, path='/'):
        return FakeReference(self, path)


class FakeQuery:
    def __init__(self, ref, order_by):
        self._ref = ref
        self._order_by = order_by
        self._start = None
        self._end = None
        self._equal = None
        self._first = None
        self._last = None

    def start_at(self, value):
        self._start = value
        return self

    def end_at(self, value):
        self._end = value
        return self

    def equal_to(self, value):
        self._equal = value
        return self

    def limit_to_first(self, limit):
        self._first = limit
        return self

    def limit_to_last(self, limit):
        self._last = limit
        return self

    def _value(self, key, data):
        if self._order_by == '$key':
            return key
        node = data
        for segment in _split(self._order_by):
            node = node.get(segment) if isinstance(node, dict) else None
        return node

    def get(self):
        data = self._ref.get()
        if not isinstance(data, dict):
            return data
        items = [(key, value, _order_key(self._value(key, value))) for key, value in data.items()]
        if self._start is not None:
            items = [item for item in items if item[2] >= _order_key(self._start)]
        if self._end is not None:
            items = [item for item in items if item[2] <= _order_key(self._end)]
        if self._equal is not None:
            items = [item for item in items if item[2] == _order_key(self._equal)]
        items.sort(key=lambda item: (item[2], item[0]))
        if self._first is not None:
            items = items[:self._first]
        if self._last is not None:
            items = items[-self._last:] if self._last else []
        return OrderedDict((key, value) for key, value, _ in items)


class FakeReference:
    """firebase_admin.db.Reference 중 서비스가 사용하는 부분만 흉내 냅니다."""

    def __init__(self, database, path='/'):
        self._db = database
        self._segments = _split(path)

    @property
    def key(self):
        return self._segments[-1] if self._segments else None

    @property
    def path(self):
        return '/' + '/'.join(self._segments)

    def child(self, path):
        if not path or not isinstance(path, str):
            raise ValueError(f'Invalid path argument: "{path}".')
        return FakeReference(self._db, '/'.join(self._segments + _split(path)))

    def get(self, etag=False, shallow=False):
        value = copy.deepcopy(self._db.read(self._segments))
        if shallow and isinstance(value, dict):
            value = {key: True for key in value}
        return value

    def set(self, value):
        if value is None:
            raise ValueError('Value must not be None.')
        self._db.write(self._segments, value)

    def update(self, value):
        if not value or not isinstance(value, dict):
            raise ValueError('Value argument must be a non-empty dictionary.')
        for path, child_value in value.items():
            self._db.write(self._segments + _split(path), child_value)

    def delete(self):
        self._db.write(self._segments, None)

    def transaction(self, transaction_update):
        new_value = transaction_update(self.get())
        self._db.write(self._segments, new_value)
        return new_value

    def order_by_child(self, path):
        return FakeQuery(self, path)

    def order_by_key(self):
        return FakeQuery(self, '$key')


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def exists(self):
        return self.name in self.bucket.files

    def make_public(self):
        self.bucket.public.add(self.name)

    def delete(self):
        self.bucket.files.discard(self.name)
        self.bucket.deleted.append(self.name)

    def generate_signed_url(self, version, expiration, method, content_type):
        return f"https://signed.example/{self.name}?method={method}&content_type={content_type}"


class FakeBucket:
    def __init__(self, name='leafly-test.appspot.com'):
        self.name = name
        self.files = set()
        self.public = set()
        self.deleted = []

    def blob(self, name):
        return FakeBlob(self, name)


@pytest.fixture
def database():
    return FakeDatabase().reference('/')


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def app(database, bucket):
    return create_app('testing', database=database, bucket=bucket)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """users/{uid} 레코드와 username 점유를 직접 만들어 주는 헬퍼."""
    def _make_user(user_id, username=None, points=0, email=None):
        username = username or user_id
        user_service = app.services['users']
        user_service.claim_username(username, user_id)
        user_service.create_user_record(User(
            user_id=user_id,
            username=username,
            email=email or f"{user_id}@leafly.test",
            points=points,
        ))
        return user_id
    return _make_user


@pytest.fixture
def auth_headers(app):
    """uid로 Access Token을 발급해 Authorization 헤더를 만들어 줍니다."""
    def _auth_headers(user_id):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def refresh_headers(app):
    def _refresh_headers(user_id):
        with app.app_context():
            token = create_refresh_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _refresh_headers
