"""
Unit tests for the row transformer.
"""

import pytest

from models.mapping import ColumnMapping
from services.row_transformer import to_catalog_item, transform_rows


@pytest.fixture
def full_mappings() -> list[ColumnMapping]:
    """Every system field mapped to a column named after its key."""
    from models.mapping import SYSTEM_FIELDS
    return [ColumnMapping(field_key=f.key, column=f.key) for f in SYSTEM_FIELDS]


class TestToCatalogItem:
    """Tests for to_catalog_item."""

    def test_sample_row(self, sample_rows, sample_mappings):
        item = to_catalog_item(sample_rows[0], sample_mappings)

        assert item.code == "A-001"
        assert item.name == "Martillo"
        assert item.price_usd == 12.5
        assert item.category == "Herramientas"
        assert item.image_url == "https://cdn.example.com/a.jpg"
        assert item.is_selected is True
        assert item.flags == {"selecto": True}
        assert item.is_active is True

    def test_unselected_and_missing_image(self, sample_rows, sample_mappings):
        item = to_catalog_item(sample_rows[1], sample_mappings)

        assert item.price_usd == 4.75
        assert item.image_url is None
        assert item.is_selected is False
        assert item.flags == {"selecto": False}

    def test_currency_price_and_empty_boolean(self, sample_rows, sample_mappings):
        item = to_catalog_item(sample_rows[2], sample_mappings)

        assert item.price_usd == 20.0
        assert item.is_selected is False

    def test_nested_buckets(self, full_mappings):
        row = {
            "codigo": "X-1",
            "producto": "Taladro",
            "precio": "99,90",
            "precio_p": "95",
            "precio_m": "n/a",
            "estado_anuncio": "Activo",
            "estado_tienda": "",
            "ef_tkc": "sí",
            "selecto": "x",
        }

        item = to_catalog_item(row, full_mappings)

        assert item.states == {"estado_anuncio": "Activo"}
        assert item.extra_prices == {"precio_p": 95.0}
        assert item.flags == {"selecto": True, "ef_tkc": True}
        assert item.price_usd == pytest.approx(99.9)

    def test_empty_optional_text_becomes_none(self, full_mappings):
        row = {"codigo": "X-1", "producto": "Taladro", "precio": "1", "suministrador": "   ", "almacen": "Norte"}

        item = to_catalog_item(row, full_mappings)

        assert item.supplier is None
        assert item.warehouse == "Norte"
        assert item.category_f1 is None

    def test_values_are_trimmed(self, sample_mappings):
        row = {"Codigo": "  A-9 ", "Producto": " Llave ", "Precio": " 3 "}

        item = to_catalog_item(row, sample_mappings)

        assert item.code == "A-9"
        assert item.name == "Llave"
        assert item.price_usd == 3.0

    def test_unparseable_price_defaults_to_zero(self, sample_mappings):
        item = to_catalog_item({"Codigo": "A", "Producto": "B", "Precio": ""}, sample_mappings)

        assert item.price_usd == 0.0


def test_transform_rows_preserves_order(sample_rows, sample_mappings):
    items = transform_rows(sample_rows, sample_mappings)

    assert [item.code for item in items] == ["A-001", "A-002", "B-001"]
