from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.db.models import F, ProtectedError
from django.utils import timezone

from .models import Category

logger = logging.getLogger(__name__)

# 트리 집계의 고정 id
CATEGORY_TREE_ID = 1


# -----------------------------
# 예외
# -----------------------------
class CategoryError(Exception):
    """카테고리 저장소 예외의 공통 부모. status_code는 HTTP 응답 코드"""

    status_code = 500


class CategoryIdAlreadySet(CategoryError):
    """생성 요청에 id가 이미 들어있을 때"""

    status_code = 409


class CategoryVersionConflict(CategoryError):
    """version 토큰이 저장된 값과 다를 때 (동시 수정)"""

    status_code = 409


class CategoryHasChildren(CategoryError):
    """하위 카테고리가 남아있어 삭제할 수 없을 때"""

    status_code = 409


class CategoryInvalid(CategoryError):
    """제약조건/유효성 위반"""

    status_code = 400


class ParentNotFound(CategoryError):
    """parent 참조 id가 저장소에 없을 때"""

    status_code = 400


class CategoryNotFound(CategoryError):
    status_code = 404


class CategoryPersistenceError(CategoryError):
    """그 밖의 DB 오류. 메시지는 원인 예외의 메시지"""

    status_code = 500


def _violation_message(exc: ValidationError) -> str:
    return "; ".join(exc.messages)


# -----------------------------
# 트리 (읽기 전용 projection)
# -----------------------------
@dataclass
class CategoryNode:
    id: int
    name: str
    description: str
    version: int
    parent_id: Optional[int]
    children: List[int] = field(default_factory=list)  # 자식 id, 형제 순서대로


@dataclass
class CategoryTree:
    """
    전체 계층의 인접 리스트 표현.
    roots는 루트 id 목록, nodes는 루트부터 너비 우선 순서의 노드 목록.
    깊이에 상관없이 재귀 없이 만들고 직렬화한다.
    """

    id: int = CATEGORY_TREE_ID
    roots: List[int] = field(default_factory=list)
    nodes: List[CategoryNode] = field(default_factory=list)


def build_category_tree(categories) -> CategoryTree:
    """
    카테고리 목록을 parent → children 인접 리스트로 묶는다.
    - 입력 순서가 곧 형제 간 순서
    - 루트에서 도달할 수 없는 행(순환)은 결과에서 빠진다
    """
    by_parent: Dict[Optional[int], List[Category]] = defaultdict(list)
    for c in categories:
        by_parent[c.parent_id].append(c)

    tree = CategoryTree()
    queue = deque(by_parent.get(None, []))
    tree.roots = [c.pk for c in queue]
    visited = set(tree.roots)

    while queue:
        c = queue.popleft()
        children = [ch for ch in by_parent.get(c.pk, []) if ch.pk not in visited]
        visited.update(ch.pk for ch in children)
        tree.nodes.append(
            CategoryNode(
                id=c.pk,
                name=c.name,
                description=c.description,
                version=c.version,
                parent_id=c.parent_id,
                children=[ch.pk for ch in children],
            )
        )
        queue.extend(children)

    return tree


# -----------------------------
# 저장소
# -----------------------------
class CategoryStore:
    """
    Category CRUD + 트리 조회.

    영속성 핸들(DB alias)은 생성자로 주입받는다. 쓰기 연산은 모두
    transaction.atomic(using=...) 안에서 실행되어 예외 시 전체 롤백된다.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    @property
    def categories(self):
        return Category.objects.using(self.using)

    # ---- 조회 ----
    def list_all(self) -> List[Category]:
        return list(self.categories.select_related("parent").order_by("id"))

    def get_by_id(self, category_id: int) -> Optional[Category]:
        return self.categories.select_related("parent").filter(pk=category_id).first()

    def get_tree(self) -> CategoryTree:
        return build_category_tree(self.categories.order_by("name", "id"))

    def resolve_parent(self, ref: Optional[Mapping[str, Any]]) -> Optional[Category]:
        """부분 참조({"id": n})를 저장된 인스턴스로 교체. 없으면 ParentNotFound"""
        if not ref or ref.get("id") is None:
            return None

        parent = self.get_by_id(ref["id"])
        if parent is None:
            raise ParentNotFound(f"Parent category with id of {ref['id']} does not exist.")
        return parent

    # ---- 생성 ----
    def create(self, data: Mapping[str, Any]) -> Category:
        if data.get("id") is not None:
            logger.warning("Rejected category create with preset id=%s", data["id"])
            raise CategoryIdAlreadySet("Unable to create Category, id was already set.")

        try:
            with transaction.atomic(using=self.using):
                category = Category(
                    name=data.get("name", ""),
                    description=data.get("description") or "",
                    parent=self.resolve_parent(data.get("parent")),
                )
                # flush 전에 제약조건을 동기적으로 검증
                category.full_clean()
                category.save(using=self.using, force_insert=True)
        except ValidationError as e:
            logger.warning("Category create rejected: %s", e.messages)
            raise CategoryInvalid(_violation_message(e)) from e
        except DatabaseError as e:
            logger.exception("Category create failed")
            raise CategoryPersistenceError(str(e)) from e

        logger.info("Created category id=%s parent=%s", category.pk, category.parent_id)
        return category

    # ---- 수정 (merge) ----
    def update(self, category_id: int, data: Mapping[str, Any]) -> Category:
        try:
            with transaction.atomic(using=self.using):
                current = self.categories.select_for_update().filter(pk=category_id).first()
                if current is None:
                    raise CategoryNotFound(
                        f"Category with id of {category_id} does not exist."
                    )

                expected = data.get("version")
                if expected is not None and expected != current.version:
                    raise CategoryVersionConflict(
                        f"Category {category_id} was modified concurrently "
                        f"(expected version {expected}, found {current.version})."
                    )

                current.name = data.get("name", "")
                current.description = data.get("description") or ""
                current.parent_id = self._merge_parent_id(data.get("parent"))

                # 부모 체인 순환 검사는 Category.clean()에서
                current.full_clean()

                # version 조건부 UPDATE: 0건이면 그 사이 다른 쓰기가 있었던 것
                updated = self.categories.filter(
                    pk=category_id, version=current.version
                ).update(
                    name=current.name,
                    description=current.description,
                    parent_id=current.parent_id,
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                )
                if not updated:
                    raise CategoryVersionConflict(
                        f"Category {category_id} was modified concurrently."
                    )
        except ValidationError as e:
            logger.warning("Category %s update rejected: %s", category_id, e.messages)
            raise CategoryInvalid(_violation_message(e)) from e
        except DatabaseError as e:
            logger.exception("Category %s update failed", category_id)
            raise CategoryPersistenceError(str(e)) from e

        logger.info("Merged category id=%s", category_id)
        return self.get_by_id(category_id)

    def _merge_parent_id(self, ref: Optional[Mapping[str, Any]]) -> Optional[int]:
        if not ref or ref.get("id") is None:
            return None
        # version이 있는 참조는 이미 로드된 엔티티로 보고 다시 조회하지 않는다
        if ref.get("version") is not None:
            return ref["id"]
        return self.resolve_parent(ref).pk

    # ---- 삭제 ----
    def remove(self, category_id: int) -> bool:
        """
        삭제 성공 시 True, 대상이 없으면 아무것도 하지 않고 False.
        하위 카테고리가 있으면 CategoryHasChildren (restrict 정책).
        """
        try:
            with transaction.atomic(using=self.using):
                category = self.categories.select_for_update().filter(pk=category_id).first()
                if category is None:
                    logger.warning("Category %s does not exist, nothing to delete", category_id)
                    return False

                if category.children.exists():
                    raise CategoryHasChildren(
                        f"Unable to delete Category {category_id}, it still has child categories."
                    )
                category.delete()
        except ProtectedError as e:
            raise CategoryHasChildren(
                f"Unable to delete Category {category_id}, it still has child categories."
            ) from e
        except DatabaseError as e:
            logger.exception("Category %s delete failed", category_id)
            raise CategoryPersistenceError(str(e)) from e

        logger.info("Deleted category id=%s", category_id)
        return True
