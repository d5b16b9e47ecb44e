from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.api_markers import DetailSerializer, EmptySerializer

from .serializers import (
    CategorySerializer,
    CategoryTreeSerializer,
    CategoryWriteSerializer,
)
from .services import CategoryError, CategoryStore

CATEGORY_ID_PARAM = OpenApiParameter("category_id", OpenApiTypes.INT, OpenApiParameter.PATH)


def _error_response(exc: CategoryError) -> Response:
    return Response({"detail": str(exc)}, status=exc.status_code)


class CategoryStoreMixin:
    """뷰마다 CategoryStore를 새로 만든다. 테스트에서는 store_class로 교체 가능"""

    store_class = CategoryStore

    def get_store(self) -> CategoryStore:
        return self.store_class()


# /api/v1/admin/categories/
@extend_schema(tags=["Admin • Categories"])
class CategoryListCreateAPI(CategoryStoreMixin, APIView):
    """
    GET  /api/v1/admin/categories/   (전체 목록, id 순)
    POST /api/v1/admin/categories/   (생성, 201 + Location: category/{id})
    """

    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="ListCategories",
        responses={200: CategorySerializer(many=True)},
    )
    def get(self, request):
        categories = self.get_store().list_all()
        return Response(CategorySerializer(categories, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="CreateCategory",
        request=CategoryWriteSerializer,
        responses={
            201: EmptySerializer,
            400: DetailSerializer,
            409: DetailSerializer,
            500: DetailSerializer,
        },
    )
    def post(self, request):
        ser = CategoryWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            category = self.get_store().create(ser.validated_data)
        except CategoryError as e:
            return _error_response(e)

        resp = Response(status=status.HTTP_201_CREATED)
        resp["Location"] = f"category/{category.pk}"
        return resp


# /api/v1/admin/categories/tree/
@extend_schema(tags=["Admin • Categories"])
class CategoryTreeAPI(CategoryStoreMixin, APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="CategoryTree",
        summary="전체 카테고리 트리",
        responses={200: CategoryTreeSerializer},
    )
    def get(self, request):
        tree = self.get_store().get_tree()
        return Response(CategoryTreeSerializer(tree).data, status=status.HTTP_200_OK)


# /api/v1/admin/categories/{category_id}/
@extend_schema(tags=["Admin • Categories"])
class CategoryDetailAPI(CategoryStoreMixin, APIView):
    """
    GET    /api/v1/admin/categories/{category_id}/   (없으면 200 + 빈 본문)
    PUT    /api/v1/admin/categories/{category_id}/   (merge, 전체 치환)
    DELETE /api/v1/admin/categories/{category_id}/   (없어도 204, 하위 있으면 409)
    """

    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="RetrieveCategory",
        parameters=[CATEGORY_ID_PARAM],
        responses={200: CategorySerializer},
    )
    def get(self, request, category_id: int):
        category = self.get_store().get_by_id(category_id)
        if category is None:
            return Response(None, status=status.HTTP_200_OK)
        return Response(CategorySerializer(category).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="UpdateCategory",
        parameters=[CATEGORY_ID_PARAM],
        request=CategoryWriteSerializer,
        responses={
            200: CategorySerializer,
            400: DetailSerializer,
            404: DetailSerializer,
            409: DetailSerializer,
            500: DetailSerializer,
        },
    )
    def put(self, request, category_id: int):
        ser = CategoryWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            category = self.get_store().update(category_id, ser.validated_data)
        except CategoryError as e:
            return _error_response(e)

        return Response(CategorySerializer(category).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="DeleteCategory",
        parameters=[CATEGORY_ID_PARAM],
        responses={204: None, 409: DetailSerializer, 500: DetailSerializer},
    )
    def delete(self, request, category_id: int):
        try:
            self.get_store().remove(category_id)
        except CategoryError as e:
            return _error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)
