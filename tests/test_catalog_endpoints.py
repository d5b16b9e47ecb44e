import pytest
from unittest.mock import patch

from django.db import DatabaseError
from django.db.models import F

from domains.catalog.models import Category
from tests.factories import category_payload


@pytest.mark.django_db
class TestListAndTree:
    def test_list_categories(self, api_client, categories_url, books, fiction):
        r = api_client.get(categories_url)

        assert r.status_code == 200
        assert [c["name"] for c in r.json()] == ["Books", "Fiction"]
        child = r.json()[1]
        assert child["parent"] == {"id": books.pk, "version": 0, "name": "Books"}
        assert r.json()[0]["parent"] is None

    def test_list_empty(self, api_client, categories_url):
        r = api_client.get(categories_url)

        assert r.status_code == 200
        assert r.json() == []

    def test_datetimes_are_iso8601(self, api_client, categories_url, books):
        r = api_client.get(f"{categories_url}{books.pk}/")

        assert "T" in r.json()["created_at"]

    def test_tree(self, api_client, categories_url, books, fiction):
        r = api_client.get(f"{categories_url}tree/")

        assert r.status_code == 200
        body = r.json()
        assert body["id"] == 1
        assert body["roots"] == [books.pk]
        assert body["nodes"] == [
            {
                "id": books.pk,
                "name": "Books",
                "description": "",
                "version": 0,
                "parent_id": None,
                "children": [fiction.pk],
            },
            {
                "id": fiction.pk,
                "name": "Fiction",
                "description": "",
                "version": 0,
                "parent_id": books.pk,
                "children": [],
            },
        ]

    def test_empty_tree(self, api_client, categories_url):
        r = api_client.get(f"{categories_url}tree/")

        assert r.status_code == 200
        assert r.json() == {"id": 1, "roots": [], "nodes": []}

    def test_deep_tree(self, api_client, categories_url):
        parent = None
        for i in range(1200):
            parent = Category.objects.create(name=f"Level {i}", parent=parent)

        r = api_client.get(f"{categories_url}tree/")

        assert r.status_code == 200
        body = r.json()
        assert len(body["nodes"]) == 1200
        assert body["nodes"][-1]["id"] == parent.pk
        assert body["nodes"][-1]["children"] == []


@pytest.mark.django_db
class TestCreateEndpoint:
    def test_create_returns_location(self, api_client, categories_url):
        r = api_client.post(categories_url, category_payload("Books"), format="json")

        assert r.status_code == 201
        created = Category.objects.get(name="Books")
        assert r["Location"] == f"category/{created.pk}"
        assert r.content == b""

    def test_create_with_id_conflicts(self, api_client, categories_url, books):
        body = category_payload("Music", id=books.pk)

        r = api_client.post(categories_url, body, format="json")

        assert r.status_code == 409
        assert r.json() == {"detail": "Unable to create Category, id was already set."}
        assert not Category.objects.filter(name="Music").exists()

    def test_create_child_with_partial_parent(self, api_client, categories_url, books):
        r = api_client.post(
            categories_url, category_payload("Fiction", parent=books.pk), format="json"
        )

        assert r.status_code == 201
        child = Category.objects.get(name="Fiction")
        assert child.parent_id == books.pk

        r = api_client.get(f"{categories_url}{child.pk}/")
        assert r.json()["parent"]["name"] == "Books"

    def test_create_with_unknown_parent(self, api_client, categories_url):
        r = api_client.post(
            categories_url, category_payload("Fiction", parent=999), format="json"
        )

        assert r.status_code == 400
        assert "999" in r.json()["detail"]

    def test_create_duplicate_is_bad_request(self, api_client, categories_url, books):
        r = api_client.post(categories_url, category_payload("Books"), format="json")

        assert r.status_code == 400
        assert "detail" in r.json()

    def test_create_malformed_body(self, api_client, categories_url):
        r = api_client.post(
            categories_url, {"name": "Fiction", "parent": {"id": "abc"}}, format="json"
        )

        assert r.status_code == 400
        assert "parent" in r.json()

    def test_create_persistence_failure(self, api_client, categories_url):
        with patch.object(Category, "save", side_effect=DatabaseError("disk full")):
            r = api_client.post(categories_url, category_payload("Books"), format="json")

        assert r.status_code == 500
        assert r.json() == {"detail": "disk full"}


@pytest.mark.django_db
class TestRetrieveEndpoint:
    def test_retrieve(self, api_client, categories_url, fiction):
        r = api_client.get(f"{categories_url}{fiction.pk}/")

        assert r.status_code == 200
        body = r.json()
        assert body["id"] == fiction.pk
        assert body["name"] == "Fiction"
        assert body["version"] == 0

    def test_retrieve_missing_has_empty_body(self, api_client, categories_url):
        r = api_client.get(f"{categories_url}999/")

        assert r.status_code == 200
        assert r.data is None
        assert r.content == b""

    def test_non_integer_id_is_not_routed(self, api_client, categories_url):
        r = api_client.get(f"{categories_url}abc/")

        assert r.status_code == 404


@pytest.mark.django_db
class TestUpdateEndpoint:
    def test_update_missing(self, api_client, categories_url):
        r = api_client.put(f"{categories_url}42/", category_payload("X"), format="json")

        assert r.status_code == 404
        assert r.json() == {"detail": "Category with id of 42 does not exist."}

    def test_update_returns_merged(self, api_client, categories_url, books, fiction):
        r = api_client.put(
            f"{categories_url}{fiction.pk}/",
            category_payload("Novels", parent=books.pk),
            format="json",
        )

        assert r.status_code == 200
        body = r.json()
        assert body["name"] == "Novels"
        assert body["version"] == 1
        assert body["parent"]["id"] == books.pk

    def test_update_with_loaded_parent(self, api_client, categories_url, category_factory):
        books = category_factory("Books")
        music = category_factory("Music")
        child = category_factory("Classics", parent=books)

        r = api_client.put(
            f"{categories_url}{child.pk}/",
            category_payload("Classics", parent=music),
            format="json",
        )

        assert r.status_code == 200
        assert r.json()["parent"]["id"] == music.pk

    def test_update_stale_version(self, api_client, categories_url, fiction):
        url = f"{categories_url}{fiction.pk}/"
        api_client.put(url, category_payload("Novels", version=0), format="json")

        r = api_client.put(url, category_payload("Stories", version=0), format="json")

        assert r.status_code == 409
        fiction.refresh_from_db()
        assert fiction.name == "Novels"

    def test_update_cycle(self, api_client, categories_url, books, fiction):
        r = api_client.put(
            f"{categories_url}{books.pk}/",
            category_payload("Books", parent=fiction.pk),
            format="json",
        )

        assert r.status_code == 400

    def test_update_missing_name(self, api_client, categories_url, books):
        r = api_client.put(f"{categories_url}{books.pk}/", {}, format="json")

        assert r.status_code == 400
        assert "name" in r.json()

    def test_update_conditional_write_conflict(self, api_client, categories_url, fiction):
        def bump_version(*args, **kwargs):
            Category.objects.filter(pk=fiction.pk).update(version=F("version") + 1)

        with patch.object(Category, "full_clean", side_effect=bump_version):
            r = api_client.put(
                f"{categories_url}{fiction.pk}/",
                category_payload("Novels", version=0),
                format="json",
            )

        assert r.status_code == 409
        assert "concurrently" in r.json()["detail"]
        fiction.refresh_from_db()
        assert fiction.name == "Fiction"

    def test_update_persistence_failure(self, api_client, categories_url, books):
        with patch.object(
            Category, "full_clean", side_effect=DatabaseError("connection reset")
        ):
            r = api_client.put(
                f"{categories_url}{books.pk}/", category_payload("Books"), format="json"
            )

        assert r.status_code == 500
        assert r.json() == {"detail": "connection reset"}


@pytest.mark.django_db
class TestDeleteEndpoint:
    def test_delete(self, api_client, categories_url, books):
        r = api_client.delete(f"{categories_url}{books.pk}/")

        assert r.status_code == 204
        r = api_client.get(f"{categories_url}{books.pk}/")
        assert r.data is None

    def test_delete_missing_is_no_content(self, api_client, categories_url):
        r = api_client.delete(f"{categories_url}999/")

        assert r.status_code == 204

    def test_delete_parent_with_children(self, api_client, categories_url, books, fiction):
        r = api_client.delete(f"{categories_url}{books.pk}/")

        assert r.status_code == 409
        fiction.refresh_from_db()
        assert fiction.parent_id == books.pk

    def test_delete_persistence_failure(self, api_client, categories_url, books):
        with patch.object(Category, "delete", side_effect=DatabaseError("locked")):
            r = api_client.delete(f"{categories_url}{books.pk}/")

        assert r.status_code == 500
        assert r.json() == {"detail": "locked"}


@pytest.mark.django_db
def test_books_fiction_scenario(api_client, categories_url):
    r = api_client.post(categories_url, category_payload("Books"), format="json")
    assert r.status_code == 201
    books_id = int(r["Location"].rsplit("/", 1)[-1])

    r = api_client.post(
        categories_url, category_payload("Fiction", parent=books_id), format="json"
    )
    assert r.status_code == 201
    fiction_id = int(r["Location"].rsplit("/", 1)[-1])

    books = api_client.get(f"{categories_url}{books_id}/").json()
    fiction = api_client.get(f"{categories_url}{fiction_id}/").json()
    assert fiction["parent"] == {
        "id": books["id"],
        "version": books["version"],
        "name": books["name"],
    }

    r = api_client.put(
        f"{categories_url}{fiction_id}/",
        category_payload("Literary Fiction", parent=books_id),
        format="json",
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Literary Fiction"
    assert r.json()["parent"]["id"] == books_id

    r = api_client.delete(f"{categories_url}{books_id}/")
    assert r.status_code == 409
    fiction = api_client.get(f"{categories_url}{fiction_id}/").json()
    assert fiction["parent"]["id"] == books_id


@pytest.mark.django_db
def test_schema_and_health(api_client):
    r = api_client.get("/api/v1/schema/")
    assert r.status_code == 200

    r = api_client.get("/healthz/")
    assert r.json() == {"ok": True}


@pytest.mark.django_db
def test_admin_changelist(admin_client, books, fiction):
    r = admin_client.get("/admin/catalog/category/")
    assert r.status_code == 200

    r = admin_client.post(
        f"/admin/catalog/category/{fiction.pk}/change/",
        {"name": "Novels", "description": "", "parent": books.pk},
    )
    assert r.status_code == 302
    fiction.refresh_from_db()
    assert fiction.name == "Novels"
    assert fiction.version == 1


@pytest.mark.django_db
def test_admin_rejects_parent_cycle(admin_client, books, fiction):
    r = admin_client.post(
        f"/admin/catalog/category/{books.pk}/change/",
        {"name": "Books", "description": "", "parent": fiction.pk},
    )

    # 저장되지 않고 폼이 오류와 함께 다시 렌더링된다
    assert r.status_code == 200
    assert "parent" in r.context["adminform"].form.errors
    books.refresh_from_db()
    assert books.parent_id is None
    assert books.version == 0
