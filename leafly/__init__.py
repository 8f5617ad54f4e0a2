# leafly/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, db

# - 설정
from leafly.core.config import config_by_name

# - API 블루프린트
from leafly.api.auth.routes import auth_bp
from leafly.api.users.routes import users_bp
from leafly.api.follows.routes import follows_bp
from leafly.api.posts.routes import posts_bp
from leafly.api.comments.routes import comments_bp
from leafly.api.leaderboard.routes import leaderboard_bp
from leafly.api.uploads.routes import uploads_bp

# - 서비스 모듈
from leafly.services.storage_service import StorageService
from leafly.services.identity_service import IdentityService
from leafly.api.auth.services import AuthService
from leafly.api.users.services import UserService
from leafly.api.follows.services import FollowService
from leafly.api.posts.services import PostService
from leafly.api.comments.services import CommentService
from leafly.api.leaderboard.services import LeaderboardService


def _init_firebase(app: Flask):
    """firebase_admin 기본 앱을 한 번만 초기화하고 Realtime Database 루트 Reference를 반환합니다."""
    if not firebase_admin._apps:
        cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred, {
            'databaseURL': app.config['FIREBASE_DATABASE_URL'],
            'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
        })
    return db.reference('/')


def create_app(config_name: str = None, database=None, bucket=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param database: Realtime Database 루트 Reference. 주어지면 firebase_admin 초기화를 건너뜁니다.
    :param bucket: Storage 버킷 객체. 주어지면 StorageService에 그대로 주입합니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    jwt = JWTManager(app)

    if database is None:
        database = _init_firebase(app)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        storage_instance = StorageService()
        storage_instance.init_app(app, bucket=bucket)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    app.services['identity'] = IdentityService(api_key=app.config.get('FIREBASE_WEB_API_KEY'))

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['follows'] = FollowService(database)
    app.services['posts'] = PostService(
        database,
        storage_service=app.services['storage'],
        follow_service=app.services['follows'],
        max_page_size=app.config['MAX_PAGE_SIZE']
    )
    app.services['comments'] = CommentService(database)
    app.services['users'] = UserService(
        database,
        storage_service=app.services['storage'],
        post_service=app.services['posts'],
        follow_service=app.services['follows'],
        points_per_level=app.config['POINTS_PER_LEVEL']
    )
    app.services['leaderboard'] = LeaderboardService(database, points_per_level=app.config['POINTS_PER_LEVEL'])
    app.services['auth'] = AuthService(
        database,
        user_service=app.services['users'],
        identity_service=app.services['identity']
    )

    # 로그아웃된 토큰은 모든 보호된 엔드포인트에서 거부됩니다.
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return app.services['auth'].is_token_revoked(jwt_payload)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(follows_bp, url_prefix='/api/users')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(comments_bp, url_prefix='/api')
    app.register_blueprint(leaderboard_bp, url_prefix='/api/leaderboard')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok"}), 200

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # 404(없는 URL), 405 등은 상태 코드를 그대로 유지합니다.
        response = {"error_code": err.name.upper().replace(' ', '_'), "message": err.description}
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected server error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
