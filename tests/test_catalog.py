# ==============================================================================
# CATALOG ENDPOINT TESTS
# ==============================================================================
# Categories, product feeds and the filter / metadata reference endpoints
# ==============================================================================

import pytest
from httpx import AsyncClient


class TestCategories:
    """Tests for /categories endpoints."""

    @pytest.mark.asyncio
    async def test_category_tree(self, client: AsyncClient):
        """Test children can be listed by parent."""
        root = await client.post("/api/v1/categories", json={"name": "Electronics", "code": "ELEC"})
        root_id = root.json()["data"]["id"]
        await client.post("/api/v1/categories/bulk", json=[
            {"name": "Phones", "code": "PHON", "parent_id": root_id, "level": 1},
            {"name": "Laptops", "code": "LAPT", "parent_id": root_id, "level": 1},
        ])

        response = await client.get("/api/v1/categories", params={
            "filter[parent_id][eq]": str(root_id),
            "sort": "name:asc",
        })

        assert [row["name"] for row in response.json()["data"]["data"]] == ["Laptops", "Phones"]

    @pytest.mark.asyncio
    async def test_root_categories(self, client: AsyncClient):
        await client.post("/api/v1/categories", json={"name": "Books", "code": "BOOK"})

        response = await client.get("/api/v1/categories", params={"parent_id@is_null": ""})

        assert response.json()["data"]["total"] == 1


class TestProductFeeds:
    """Tests for feed membership endpoints."""

    @pytest.mark.asyncio
    async def test_add_list_remove(self, client: AsyncClient, products):
        """Test attaching and detaching products."""
        feed = await client.post("/api/v1/product-feeds", json={"name": "Marketplace export"})
        feed_id = feed.json()["data"]["id"]
        first, second = products[0].id, products[1].id

        added = await client.post(
            f"/api/v1/product-feeds/{feed_id}/products",
            json={"product_ids": [second, first]},
        )
        again = await client.post(
            f"/api/v1/product-feeds/{feed_id}/products",
            json={"product_ids": [first]},
        )
        removed = await client.delete(f"/api/v1/product-feeds/{feed_id}/products/{first}")
        listed = await client.get(f"/api/v1/product-feeds/{feed_id}/products")

        assert added.status_code == 201
        assert [p["id"] for p in added.json()["data"]] == [first, second]
        assert [p["id"] for p in again.json()["data"]] == [first, second]
        assert [p["id"] for p in removed.json()["data"]] == [second]
        assert [p["name"] for p in listed.json()["data"]] == ["iPhone 15"]

    @pytest.mark.asyncio
    async def test_unknown_product(self, client: AsyncClient):
        feed = await client.post("/api/v1/product-feeds", json={"name": "Empty"})
        feed_id = feed.json()["data"]["id"]

        response = await client.post(
            f"/api/v1/product-feeds/{feed_id}/products",
            json={"product_ids": [404]},
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_feed(self, client: AsyncClient):
        response = await client.get("/api/v1/product-feeds/999/products")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_product_list_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/product-feeds/1/products", json={"product_ids": []})

        assert response.status_code == 422


class TestReferenceEndpoints:
    """Tests for filter documentation and entity metadata."""

    @pytest.mark.asyncio
    async def test_operators(self, client: AsyncClient):
        response = await client.get("/api/v1/filters/operators")

        operators = response.json()["data"]
        assert {"eq", "ilike", "in", "is_null", "date_between", "date_last_month"} <= set(operators)
        assert "example" in operators["eq"]

    @pytest.mark.asyncio
    async def test_usage(self, client: AsyncClient):
        response = await client.get("/api/v1/filters/usage")

        assert response.status_code == 200
        assert response.json()["data"]

    @pytest.mark.asyncio
    async def test_entity_list(self, client: AsyncClient):
        response = await client.get("/api/v1/metadata")

        assert response.json()["data"] == [
            "category",
            "product",
            "product_image",
            "supplier",
            "product_feed",
            "user",
            "user_role",
        ]

    @pytest.mark.asyncio
    async def test_product_metadata(self, client: AsyncClient):
        """Test columns carry their documentation."""
        response = await client.get("/api/v1/metadata/product")

        metadata = response.json()["data"]
        assert metadata["table"] == "products"
        assert metadata["primary_key"] == ["id"]
        assert metadata["source"]["system"] == "catalog"
        sku = next(field for field in metadata["fields"] if field["name"] == "sku")
        assert sku["display_name"] == "SKU"

    @pytest.mark.asyncio
    async def test_composite_key_metadata(self, client: AsyncClient):
        response = await client.get("/api/v1/metadata/user_role")

        assert response.json()["data"]["primary_key"] == ["user_id", "role_id"]
        assert response.json()["data"]["default_sort"] is None

    @pytest.mark.asyncio
    async def test_unknown_entity(self, client: AsyncClient):
        response = await client.get("/api/v1/metadata/invoice")

        assert response.status_code == 404
