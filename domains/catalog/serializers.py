# domains/catalog/serializers.py
from __future__ import annotations

from rest_framework import serializers

from .models import Category


# =========================
# Categories (int id / self-referential parent)
# =========================
class CategoryReferenceSerializer(serializers.Serializer):
    """
    parent 참조.
    - 입력: {"id": n} (부분 참조) 또는 {"id": n, "version": v} (로드된 엔티티)
    - 출력: id/version/name
    """

    id = serializers.IntegerField(min_value=1)
    version = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    name = serializers.CharField(read_only=True)


class CategorySerializer(serializers.ModelSerializer):
    parent = CategoryReferenceSerializer(read_only=True, allow_null=True)

    class Meta:
        model = Category
        fields = (
            "id",
            "version",
            "name",
            "description",
            "parent",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class CategoryWriteSerializer(serializers.Serializer):
    """
    POST/PUT 본문. 검증 결과(validated_data)는 그대로 CategoryStore로 넘긴다.
    id는 생성 시 충돌 판정용으로만 받는다(서버가 부여).
    """

    id = serializers.IntegerField(required=False, allow_null=True)
    version = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    parent = CategoryReferenceSerializer(required=False, allow_null=True)


# =========================
# Category Tree
# =========================
class CategoryNodeSerializer(serializers.Serializer):
    """트리 노드 1개. children은 하위 노드 id 목록(중첩 없음)"""

    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    version = serializers.IntegerField()
    parent_id = serializers.IntegerField(allow_null=True)
    children = serializers.ListField(child=serializers.IntegerField())


class CategoryTreeSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    roots = serializers.ListField(child=serializers.IntegerField())
    nodes = CategoryNodeSerializer(many=True)
