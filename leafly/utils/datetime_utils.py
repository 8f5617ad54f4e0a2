# leafly/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간 처리를 위한 중앙화된 유틸리티 모듈

Realtime Database에는 datetime 타입이 없으므로 모든 시각은
epoch 밀리초(int)로 저장하고, API 응답에서는 ISO 문자열로 변환합니다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def now_ms() -> int:
        """현재 시각을 epoch 밀리초로 반환 (Realtime Database 저장용)"""
        return DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("empty string")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            # timezone-naive인 경우 UTC로 가정
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"Invalid ISO datetime: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 ISO 포맷 문자열로 변환 (Z 접미사 사용)"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def from_timestamp_ms(timestamp_ms: Union[int, float]) -> datetime:
        """
        Unix timestamp (밀리초)를 UTC datetime 객체로 변환

        Args:
            timestamp_ms: Unix timestamp in milliseconds

        Returns:
            UTC timezone-aware datetime 객체
        """
        try:
            if isinstance(timestamp_ms, bool) or not isinstance(timestamp_ms, (int, float)):
                raise ValueError("timestamp_ms must be a number")

            return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)

        except Exception as e:
            logger.error(f"timestamp_ms 변환 실패: {timestamp_ms} - {e}")
            raise ValueError(f"Invalid timestamp: {timestamp_ms}")

    @staticmethod
    def to_timestamp_ms(dt: datetime) -> int:
        """datetime 객체를 Unix timestamp (밀리초)로 변환"""
        if not isinstance(dt, datetime):
            raise ValueError(f"datetime 객체여야 합니다: {type(dt)}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(round(dt.timestamp() * 1000))

    @staticmethod
    def ms_to_iso(timestamp_ms: Any) -> Optional[str]:
        """
        저장된 밀리초 값을 ISO 문자열로 변환합니다.
        값이 없거나 잘못된 경우 None을 반환합니다 (로그만 남김).
        """
        if timestamp_ms is None:
            return None
        try:
            return DateTimeUtils.to_iso_string(DateTimeUtils.from_timestamp_ms(timestamp_ms))
        except ValueError:
            return None

