# leafly/core/config.py

import os
from datetime import timedelta


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 토큰 위변조 방지에 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    # Realtime Database / Storage / Identity Toolkit 접속 정보
    FIREBASE_DATABASE_URL = os.getenv('FIREBASE_DATABASE_URL')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')

    # 레벨 1개당 필요한 포인트 (앱 프로필 화면과 동일한 규칙)
    POINTS_PER_LEVEL = int(os.getenv('POINTS_PER_LEVEL', 100))
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', 20))
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', 50))
    LEADERBOARD_SIZE = int(os.getenv('LEADERBOARD_SIZE', 10))


class DevelopmentConfig(Config):
    """개발 환경 설정. 코드 변경 시 자동 재시작, 상세 에러 페이지를 사용합니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경 설정."""
    TESTING = True
    DEBUG = False
    # 테스트에서는 .env 없이도 토큰을 발급할 수 있어야 합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'leafly-testing-secret')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    FIREBASE_WEB_API_KEY = 'testing-api-key'


class ProductionConfig(Config):
    """운영 환경 설정."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('PROD_FIREBASE_CREDENTIALS_PATH')


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
