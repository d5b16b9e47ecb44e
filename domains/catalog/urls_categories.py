from django.urls import path

from .views_categories import CategoryDetailAPI, CategoryListCreateAPI, CategoryTreeAPI

app_name = "catalog_categories"

urlpatterns = [
    # GET  /api/v1/admin/categories/
    # POST /api/v1/admin/categories/
    path("", CategoryListCreateAPI.as_view(), name="list-create"),

    # GET /api/v1/admin/categories/tree/
    path("tree/", CategoryTreeAPI.as_view(), name="tree"),

    # GET    /api/v1/admin/categories/{id}/
    # PUT    /api/v1/admin/categories/{id}/
    # DELETE /api/v1/admin/categories/{id}/
    path("<int:category_id>/", CategoryDetailAPI.as_view(), name="detail"),
]
