from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "domains.catalog"
    label = "catalog"  # makemigrations catalog 가능하게 유지
    verbose_name = "Catalog"
