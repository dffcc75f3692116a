# app/utils/test_datetime_utils.py
"""
시간 유틸리티 기능 테스트

사용법: python -m pytest blog_backend/app/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, timezone
from app.utils.datetime_utils import DateTimeUtils

def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T19:30:00+09:00",
        "2024-01-15T10:30:00.000Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert dt == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함

def test_for_firestore():
    """Firestore 변환 테스트: naive datetime은 UTC로, 중첩 구조도 재귀 변환"""
    test_data = {
        'created_at': datetime(2024, 1, 15, 10, 30),
        'replies': [
            {'created_at': datetime(2024, 1, 1)}
        ],
        'likes': 3
    }

    converted = DateTimeUtils.for_firestore(test_data)

    assert converted['created_at'].tzinfo == timezone.utc
    assert converted['replies'][0]['created_at'].tzinfo == timezone.utc
    assert converted['likes'] == 3

def test_from_firestore_keeps_plain_values():
    data = {'created_at': datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc), 'username': 'kim'}
    converted = DateTimeUtils.from_firestore(data)
    assert converted == data

def test_validate_datetime_field():
    """datetime 필드 검증 테스트"""
    valid_cases = [
        "2024-01-15T10:30:00Z",
        datetime(2024, 1, 15, 10, 30),
        datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    ]

    for case in valid_cases:
        result = DateTimeUtils.validate_datetime_field(case)
        assert isinstance(result, datetime)
        assert result.tzinfo == timezone.utc

def test_error_handling():
    """오류 처리 테스트"""
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")

    with pytest.raises(ValueError):
        DateTimeUtils.validate_datetime_field(None)

    with pytest.raises(ValueError):
        DateTimeUtils.validate_datetime_field(12345)
