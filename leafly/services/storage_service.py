# leafly/services/storage_service.py
import uuid
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import unquote, urlparse
from flask import Flask
from firebase_admin import storage


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    이미지 바이트는 클라이언트가 Pre-signed URL로 직접 업로드하고,
    서버는 URL 발급 / 공개 전환 / 삭제만 담당합니다.
    """

    # 업로드 목적별 저장 폴더
    FOLDERS = {
        "user_profile": "user_profiles",
        "post_image": "posts",
    }

    def __init__(self):
        self.bucket = None

    def init_app(self, app: Flask, bucket=None):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        :param bucket: 이미 생성된 버킷 객체 (테스트에서 주입)
        """
        if bucket is not None:
            self.bucket = bucket
            return

        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET must be set in the environment or config.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService is not initialised. Call init_app first.")

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        업로드 타입에 맞는 경로로 15분간 유효한 PUT 전용 URL을 생성합니다.

        :param user_id: JWT에서 추출한 현재 사용자 ID
        :param upload_type: "user_profile" 또는 "post_image"
        :param filename: 원본 파일명 (확장자 파악에 사용)
        :param content_type: 업로드할 파일의 MIME 타입 (예: "image/jpeg")
        :return: 업로드 URL과 이후 요청에 사용할 file_path
        """
        self._require_bucket()

        folder = self.FOLDERS.get(upload_type)
        if not folder:
            raise ValueError(f"'{upload_type}' is not a valid upload type.")
        if not content_type.startswith("image/"):
            raise ValueError("Only image uploads are supported.")

        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{folder}/{user_id}/{unique_filename}"

        blob = self.bucket.blob(destination_blob_name)
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    def assert_owned_by(self, file_path: str, user_id: str) -> None:
        """파일 경로가 해당 사용자의 업로드 폴더 아래에 있는지 확인합니다."""
        parts = file_path.split('/')
        if len(parts) < 3 or parts[0] not in self.FOLDERS.values() or parts[1] != user_id or '..' in parts:
            raise PermissionError("The file does not belong to the current user.")

    def make_public_and_get_url(self, file_path: str, user_id: Optional[str] = None) -> str:
        """
        업로드가 끝난 파일을 공개(public)로 설정하고 해당 URL을 반환합니다.

        :param file_path: generate_upload_url이 돌려준 경로
        :param user_id: 지정하면 본인 폴더의 파일인지 검사합니다
        :return: 공개적으로 접근 가능한 URL
        """
        self._require_bucket()
        if user_id is not None:
            self.assert_owned_by(file_path, user_id)

        blob = self.bucket.blob(file_path)
        if not blob.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            blob.make_public()
            return blob.public_url
        except Exception as e:
            logging.error(f"파일 공개 전환 실패 ({file_path}): {e}", exc_info=True)
            raise

    def path_from_public_url(self, url: str) -> Optional[str]:
        """https://storage.googleapis.com/{bucket}/{path} 형태의 URL에서 path를 추출합니다."""
        parsed = urlparse(url)
        segments = unquote(parsed.path).lstrip('/').split('/', 1)
        if len(segments) != 2 or not segments[1]:
            return None
        return segments[1]

    def delete_by_url(self, url: str) -> bool:
        """
        공개 URL에 해당하는 파일을 삭제합니다. 게시글 삭제 시 호출되는 best-effort 작업으로,
        실패해도 예외를 올리지 않고 False를 반환합니다.
        """
        if not self.bucket or not url:
            return False
        file_path = self.path_from_public_url(url)
        if not file_path:
            return False
        try:
            blob = self.bucket.blob(file_path)
            if blob.exists():
                blob.delete()
                return True
            return False
        except Exception as e:
            logging.error(f"Storage 이미지 삭제 실패 (url: {url}): {e}")
            return False
