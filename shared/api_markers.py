# shared/api_markers.py
"""
API 문서화용 마커 클래스들

@extend_schema의 request/responses에 쓰는 본문 구조 정의.
실제 직렬화에는 쓰이지 않는다.
"""
from rest_framework import serializers


class EmptySerializer(serializers.Serializer):
    """
    본문이 없는 요청/응답에 쓰는 더미 시리얼라이저

    사용 예시:
    @extend_schema(responses={201: EmptySerializer})
    """
    pass


class DetailSerializer(serializers.Serializer):
    """
    오류 응답 본문 {"detail": "..."}

    구조화된 에러 코드 없이 사람이 읽는 메시지만 담는다.
    """
    detail = serializers.CharField()
