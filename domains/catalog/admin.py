from __future__ import annotations

from django.contrib import admin
from django.db.models import F

from .models import Category


# -------- Category -------------------------------------------------
@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "parent", "version", "updated_at")
    list_filter = ("parent",)
    search_fields = ("name", "description")
    ordering = ("name",)
    readonly_fields = ("version", "created_at", "updated_at")
    autocomplete_fields = ("parent",)

    def save_model(self, request, obj: Category, form, change):
        super().save_model(request, obj, form, change)
        # 관리자 화면 수정도 API merge와 같은 version 규칙을 따른다
        if change:
            Category.objects.filter(pk=obj.pk).update(version=F("version") + 1)
            obj.refresh_from_db(fields=["version"])
