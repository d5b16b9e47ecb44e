# tests/conftest.py
import pytest
from rest_framework.test import APIClient

from domains.catalog.models import Category
from domains.catalog.services import CategoryStore

CATEGORIES_URL = "/api/v1/admin/categories/"


# ─────────────────────────────────────────────────────────────
# 클라이언트 & 저장소
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def store(db):
    return CategoryStore(using="default")


@pytest.fixture
def categories_url():
    return CATEGORIES_URL


# ─────────────────────────────────────────────────────────────
# 카탈로그 기본 리소스
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def category_factory(db):
    """
    사용법: category_factory("Fiction", parent=books)
    """

    def _make(name="Books", parent=None, **kw):
        return Category.objects.create(name=name, parent=parent, **kw)

    return _make


@pytest.fixture
def books(category_factory):
    return category_factory("Books")


@pytest.fixture
def fiction(category_factory, books):
    return category_factory("Fiction", parent=books)
