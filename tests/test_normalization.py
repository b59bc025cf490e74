# tests/test_normalization.py
from decimal import Decimal
from uuid import UUID

import pytest

from app.search.normalization import split_images, to_sale_row, to_store_row
from .conftest import SALE_ID, STORE_ID


class TestImages:
    """La colonne simple-array devient une liste."""

    def test_joined_string_becomes_list(self):
        assert split_images("a,b,c") == ["a", "b", "c"]

    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty_or_absent_gives_empty_list(self, value):
        assert split_images(value) == []

    def test_already_a_list_is_kept(self):
        assert split_images(["a", "b"]) == ["a", "b"]


class TestRows:

    def test_sale_row_normalized(self, sale_row):
        row = to_sale_row(sale_row)
        assert row.id == SALE_ID
        assert row.images == ["https://cdn/a.jpg", "https://cdn/b.jpg"]
        assert row.discount_percentage == 50
        assert row.distance == 120.5
        assert row.store is not None
        assert row.store.id == STORE_ID
        assert row.store.city == "Tel Aviv"

    def test_sale_row_serializes_with_wire_names(self, sale_row):
        body = to_sale_row(sale_row).model_dump(by_alias=True)
        assert body["discountPercentage"] == 50
        assert body["storeId"] == STORE_ID
        assert body["images"] == ["https://cdn/a.jpg", "https://cdn/b.jpg"]
        assert body["store"]["name"] == "Dizengoff Shop"

    def test_asyncpg_types_are_coerced(self, sale_row):
        sale_row.update({
            "id": UUID(SALE_ID),
            "storeId": UUID(STORE_ID),
            "salePrice": Decimal("99.90"),
            "latitude": Decimal("32.0853000"),
        })
        row = to_sale_row(sale_row)
        assert row.id == SALE_ID
        assert row.store_id == STORE_ID
        assert row.sale_price == pytest.approx(99.9)
        assert row.latitude == pytest.approx(32.0853)

    def test_missing_store_join_gives_null_store(self, sale_row):
        sale_row["store"] = '{"id": null, "name": null, "category": null, "logo": null, "address": null, "city": null}'
        assert to_sale_row(sale_row).store is None

    def test_without_distance_forces_null(self, sale_row):
        assert to_sale_row(sale_row, with_distance=False).distance is None

    def test_store_row_decodes_opening_hours(self, store_row):
        row = to_store_row(store_row)
        assert row.opening_hours == {"monday": {"open": "09:00", "close": "20:00"}}
        assert row.is_active is True
        assert row.distance == 42.0


class TestImagesSegments:

    def test_empty_segments_are_kept(self):
        assert split_images("a,,b") == ["a", "", "b"]

    def test_segments_are_not_stripped(self):
        assert split_images("a, b") == ["a", " b"]
