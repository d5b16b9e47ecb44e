from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models


# ------------------------
# Category (계층형)
# ------------------------
class Category(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    # 계층 (부모가 없으면 루트)
    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,   # 하위가 있으면 삭제 금지(데이터 보전)
        null=True,
        blank=True,
        related_name="children",
        db_index=True,
    )

    # 낙관적 동시성 토큰. 생성 시 0, merge 성공마다 +1
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "categories"
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        constraints = [
            # 같은 부모 아래에서 이름 중복 금지
            models.UniqueConstraint(
                fields=["parent", "name"],
                name="uq_category_parent_name",
            ),
            # 루트(parent is NULL)에서는 name 고유
            models.UniqueConstraint(
                fields=["name"],
                name="uq_category_root_name",
                condition=models.Q(parent__isnull=True),
                violation_error_message="A root category with this name already exists.",
            ),
        ]

    # ---- 유효성 ----
    def clean(self):
        if self.pk is None or self.parent_id is None:
            return
        if self.parent_id == self.pk:
            raise ValidationError({"parent": "A category cannot be its own parent."})

        # 새 부모에서 루트까지 올라가며 자기 자신이 나오면 순환
        manager = type(self)._default_manager.db_manager(self._state.db)
        seen = set()
        node_id = self.parent_id
        while node_id is not None and node_id not in seen:
            if node_id == self.pk:
                raise ValidationError(
                    {"parent": "A category cannot be moved below one of its descendants."}
                )
            seen.add(node_id)
            node_id = (
                manager.filter(pk=node_id).values_list("parent_id", flat=True).first()
            )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def __str__(self) -> str:
        return self.name or f"Category {self.pk}"
