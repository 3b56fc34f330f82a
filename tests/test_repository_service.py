# ==============================================================================
# REPOSITORY SERVICE TESTS
# ==============================================================================
# Filtering, sorting, pagination and CRUD against a SQLite database
# ==============================================================================

from decimal import Decimal

import pytest

from catalog_backend.core.exceptions import ValidationError
from catalog_backend.filters.models import (
    BaseFilter,
    ComparisonOperator,
    LogicalFilter,
    LogicalOperator,
    PaginationOptions,
    SortDirection,
    SortOption,
)
from catalog_backend.filters.parser import FilterParser
from catalog_backend.services.results import Err, ErrorKind, Ok


def leaf(field, operator, value=None) -> BaseFilter:
    return BaseFilter(field=field, operator=operator, value=value)


def names(page) -> set:
    return {row.name for row in page.data}


class TestFindAll:
    """Tests for filtered, sorted and paginated listing."""

    @pytest.mark.asyncio
    async def test_price_range(self, container, products):
        """Test price>=1000 AND price<=5000 keeps the 1500 and 5000 rows."""
        result = await container.service("product").find_all(
            filter=LogicalFilter(
                operator=LogicalOperator.AND,
                filters=[
                    leaf("price", ComparisonOperator.GTE, 1000),
                    leaf("price", ComparisonOperator.LTE, 5000),
                ],
            ),
        )

        assert isinstance(result, Ok)
        assert names(result.value) == {"iPhone 15", "Phone Case"}
        assert result.value.total == 2

    @pytest.mark.asyncio
    async def test_legacy_ilike(self, container, products):
        """Test name@ilike=phone matches regardless of case."""
        options = FilterParser().parse({"name@ilike": "phone"})

        result = await container.service("product").find_all(options.filter)

        assert names(result.value) == {"iPhone 15", "Phone Case"}

    @pytest.mark.asyncio
    async def test_like_is_case_sensitive(self, container, products):
        """Test like only matches the exact case."""
        service = container.service("product")

        lower = await service.find_all(leaf("name", ComparisonOperator.LIKE, "phone"))
        upper = await service.find_all(leaf("name", ComparisonOperator.LIKE, "Phone"))

        assert names(lower.value) == set()
        assert names(upper.value) == {"iPhone 15", "Phone Case"}

    @pytest.mark.asyncio
    async def test_date_between(self, container, products):
        """Test a January range keeps only the mid-January row."""
        options = FilterParser().parse({"stocked_date@date_between": "2023-01-01,2023-01-31"})

        result = await container.service("product").find_all(options.filter)

        assert names(result.value) == {"iPhone 15"}

    @pytest.mark.asyncio
    async def test_date_today_matches_rows_created_now(self, container):
        """Test server-set timestamps fall inside today whatever the host timezone."""
        service = container.service("supplier")
        await service.create_one({"name": "Northwind"})

        result = await service.find_all(leaf("created_at", ComparisonOperator.DATE_TODAY))

        assert names(result.value) == {"Northwind"}

    @pytest.mark.asyncio
    async def test_in_and_not_in(self, container, products):
        service = container.service("product")

        included = await service.find_all(leaf("manufacturer", ComparisonOperator.IN, ["Apple", "Sony"]))
        excluded = await service.find_all(leaf("manufacturer", ComparisonOperator.NOT_IN, ["Acme"]))

        assert names(included.value) == {"iPhone 15", "Monitor"}
        assert names(excluded.value) == {"iPhone 15", "Monitor"}

    @pytest.mark.asyncio
    async def test_is_null(self, container, products):
        result = await container.service("product").find_all(
            leaf("stocked_date", ComparisonOperator.IS_NULL)
        )

        assert names(result.value) == {"Monitor"}

    @pytest.mark.asyncio
    async def test_grouping_changes_results(self, container, products):
        """Test AND(OR(a,b),c) and OR(AND(a,b),c) select different rows."""
        acme = leaf("manufacturer", ComparisonOperator.EQ, "Acme")
        apple = leaf("manufacturer", ComparisonOperator.EQ, "Apple")
        in_stock = leaf("stock", ComparisonOperator.GT, 0)
        service = container.service("product")

        and_of_or = await service.find_all(LogicalFilter(
            operator=LogicalOperator.AND,
            filters=[LogicalFilter(operator=LogicalOperator.OR, filters=[acme, apple]), in_stock],
        ))
        or_of_and = await service.find_all(LogicalFilter(
            operator=LogicalOperator.OR,
            filters=[LogicalFilter(operator=LogicalOperator.AND, filters=[acme, apple]), in_stock],
        ))

        assert names(and_of_or.value) == {"Laptop", "iPhone 15"}
        assert names(or_of_and.value) == {"Laptop", "iPhone 15", "Monitor"}

    @pytest.mark.asyncio
    async def test_unknown_filter_field_is_ignored(self, container, products):
        """Test a filter on an unmapped field does not restrict results."""
        result = await container.service("product").find_all(
            leaf("secret", ComparisonOperator.EQ, "x")
        )

        assert result.value.total == 4

    @pytest.mark.asyncio
    async def test_sorting(self, container, products):
        """Test explicit sort order, with unknown sort fields skipped."""
        result = await container.service("product").find_all(
            sort=[
                SortOption(field="bogus", direction=SortDirection.ASC),
                SortOption(field="price", direction=SortDirection.DESC),
            ],
        )

        assert [row.name for row in result.value.data] == [
            "Monitor",
            "Phone Case",
            "iPhone 15",
            "Laptop",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "page,limit,rows,total_pages",
        [
            (1, 10, 4, 1),
            (1, 3, 3, 2),
            (2, 3, 1, 2),
            (3, 3, 0, 2),
            (1, 1, 1, 4),
        ],
    )
    async def test_pagination(self, container, products, page, limit, rows, total_pages):
        """Test page slices and page counts."""
        result = await container.service("product").find_all(
            sort=[SortOption(field="price")],
            pagination=PaginationOptions(page=page, limit=limit),
        )

        paged = result.value
        assert paged.total == 4
        assert len(paged.data) == rows
        assert len(paged.data) <= limit
        assert paged.total_pages == total_pages
        assert (paged.page, paged.limit) == (page, limit)

    @pytest.mark.asyncio
    async def test_empty_table(self, container):
        """Test zero rows gives zero pages."""
        result = await container.service("supplier").find_all()

        assert result.value.total == 0
        assert result.value.total_pages == 0
        assert result.value.data == []

    @pytest.mark.asyncio
    async def test_rendered_query_has_no_values(self, container, products):
        """Test the audit query carries placeholders, not operands."""
        result = await container.service("product").find_all(
            leaf("name", ComparisonOperator.EQ, "Monitor")
        )

        rendered = result.value.source.rendered_query
        assert "products.name =" in rendered
        assert "Monitor" not in rendered


class TestSingleKeyCrud:
    """Tests for create, read, update and delete with an integer key."""

    @pytest.mark.asyncio
    async def test_create_and_find(self, container):
        service = container.service("supplier")

        created = await service.create_one({"name": "Acme Corp", "city": "Berlin"})
        found = await service.find_by_key(created.value.id)

        assert found.value.name == "Acme Corp"
        assert found.value.created_at is not None

    @pytest.mark.asyncio
    async def test_find_missing_is_none(self, container):
        result = await container.service("supplier").find_by_key(999)

        assert isinstance(result, Ok)
        assert result.value is None

    @pytest.mark.asyncio
    async def test_find_with_expanded_relations(self, container, products):
        """Test expanded relations are readable after the session closed."""
        images = container.service("product_image")
        await images.create_one({"product_id": products[0].id, "url": "b.jpg", "sort_order": 1})
        await images.create_one({"product_id": products[0].id, "url": "a.jpg", "sort_order": 0})
        service = container.service("product")

        result = await service.find_by_key(products[0].id, expand=["images", "warehouse"])

        assert set(service.relations) == {"category", "images", "suppliers"}
        assert [image.url for image in result.value.images] == ["a.jpg", "b.jpg"]

    @pytest.mark.asyncio
    async def test_update_merges_patch(self, container, products):
        """Test only patched fields change."""
        service = container.service("product")
        target = products[0]

        updated = await service.update(target.id, {"stock": 42})

        assert updated.value.stock == 42
        assert updated.value.name == target.name

    @pytest.mark.asyncio
    async def test_update_missing_is_not_found(self, container):
        result = await container.service("product").update(999, {"stock": 1})

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.NOT_FOUND
        assert result.recovered is False

    @pytest.mark.asyncio
    async def test_delete(self, container, products):
        """Test delete reports whether a row was removed."""
        service = container.service("product")

        first = await service.delete(products[0].id)
        second = await service.delete(products[0].id)

        assert first.value is True
        assert second.value is False

    @pytest.mark.asyncio
    async def test_unknown_field_raises(self, container):
        """Test payload fields must be mapped columns."""
        with pytest.raises(ValidationError):
            await container.service("supplier").create_one({"name": "X", "rating": 5})


class TestConstraintErrors:
    """Tests for write failures that must not be retried."""

    @pytest.mark.asyncio
    async def test_duplicate_is_constraint_error(self, container, recording_sink):
        """Test a uniqueness violation comes back as a constraint Err."""
        service = container.service("user")
        await service.create_one({"username": "alice", "email": "alice@example.com"})

        result = await service.create_one({"username": "alice", "email": "other@example.com"})

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.CONSTRAINT
        assert result.recovered is False
        assert recording_sink.messages == []
        assert container.registry.is_initialized("main")

    @pytest.mark.asyncio
    async def test_bulk_create_is_atomic(self, container):
        """Test no row persists when one row of a batch fails."""
        service = container.service("product")

        result = await service.create_many([
            {"name": "A", "price": Decimal("1"), "sku": "DUP"},
            {"name": "B", "price": Decimal("2"), "sku": "DUP"},
        ])
        listing = await service.find_all()

        assert result.kind == ErrorKind.CONSTRAINT
        assert listing.value.total == 0


class TestCompositeKeys:
    """Tests for entities keyed by more than one field."""

    @pytest.mark.asyncio
    async def test_crud_by_composite_key(self, container):
        service = container.service("user_role")
        key = {"user_id": 1, "role_id": 2}

        await service.create_one({**key, "role_name": "editor"})
        found = await service.find_by_key(key)
        updated = await service.update(key, {"role_name": "admin"})
        deleted = await service.delete(key)
        gone = await service.find_by_key(key)

        assert found.value.role_name == "editor"
        assert updated.value.role_name == "admin"
        assert deleted.value is True
        assert gone.value is None

    @pytest.mark.asyncio
    async def test_delete_missing_composite_key(self, container):
        result = await container.service("user_role").delete({"user_id": 7, "role_id": 7})

        assert result.value is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "key",
        [
            {"user_id": 1},
            {"role_id": 2},
            {"user_id": 1, "role_id": None},
            {"user_id": 1, "role_id": 2, "tenant": 3},
            5,
            None,
        ],
    )
    async def test_incomplete_key_fails_before_query(self, container, monkeypatch, key):
        """Test malformed composite keys raise ValidationError without touching storage."""
        service = container.service("user_role")

        async def no_storage(*args, **kwargs):
            raise AssertionError("storage was accessed")

        monkeypatch.setattr(service, "execute_database_operation", no_storage)

        with pytest.raises(ValidationError):
            await service.find_by_key(key)
        with pytest.raises(ValidationError):
            await service.update(key, {"role_name": "x"})
        with pytest.raises(ValidationError):
            await service.delete(key)
