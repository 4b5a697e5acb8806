"""
Shared test fixtures.

Settings are read at import time, so the Supabase variables get dummy values
before any project module is imported.
"""

import os
import sys
from pathlib import Path

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator

from models.mapping import SYSTEM_FIELDS, ColumnMapping
from tests.factories import create_excel_file
from tests.fakes import InMemoryCatalogStore


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        for index, item in enumerate(data):
            item.setdefault("id", f"test-uuid-{index + 1}")
            item["created_at"] = datetime.utcnow().isoformat() + "Z"
        self._data = data
        return self

    def update(self, data):
        self._data = [{**item, **data} for item in self._data] or [data]
        return self

    def delete(self):
        return self

    def eq(self, column, value):
        return self

    def neq(self, column, value):
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        self._data = self._data[start:end + 1]
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count)

    def insert(self, data):
        return MockSupabaseQuery([], self._count).insert(data)

    def update(self, data):
        # For update, pass the existing data so it can be merged
        return MockSupabaseQuery(self._data.copy(), self._count).update(data)

    def delete(self):
        return MockSupabaseQuery(self._data.copy(), self._count)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.rpc_calls: list[tuple[str, dict]] = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"])

    def rpc(self, function_name: str, params: dict) -> MockSupabaseQuery:
        """Record a stored function call."""
        self.rpc_calls.append((function_name, params))
        return MockSupabaseQuery([])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("catalogs", [
                {"id": "1", "name": "Ferretería", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any SupabaseCatalogStore built inside the test gets the mock.
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_store.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def store() -> InMemoryCatalogStore:
    """Empty in-memory catalog store."""
    return InMemoryCatalogStore()


@pytest.fixture
def sample_columns() -> list[str]:
    """Header row of a typical supplier spreadsheet."""
    return ["Codigo", "Producto", "Precio", "Categoria", "Imagen", "Selecto"]


@pytest.fixture
def sample_rows() -> list[dict]:
    """Parsed rows matching sample_columns."""
    return [
        {"Codigo": "A-001", "Producto": "Martillo", "Precio": "12.50", "Categoria": "Herramientas",
         "Imagen": "cdn.example.com/a.jpg", "Selecto": "si"},
        {"Codigo": "A-002", "Producto": "Destornillador", "Precio": "4,75", "Categoria": "Herramientas",
         "Imagen": None, "Selecto": "no"},
        {"Codigo": "B-001", "Producto": "Pintura blanca", "Precio": "$20", "Categoria": "Pinturas",
         "Imagen": "https://cdn.example.com/b.png", "Selecto": None},
    ]


@pytest.fixture
def sample_mappings(sample_columns) -> list[ColumnMapping]:
    """Mappings for sample_columns; every other field unmapped."""
    by_field = {
        "codigo": "Codigo",
        "producto": "Producto",
        "precio": "Precio",
        "categoria": "Categoria",
        "imagen": "Imagen",
        "selecto": "Selecto",
    }
    return [ColumnMapping(field_key=f.key, column=by_field.get(f.key)) for f in SYSTEM_FIELDS]


@pytest.fixture
def sample_excel(sample_rows, sample_columns) -> bytes:
    """sample_rows as .xlsx bytes."""
    return create_excel_file(sample_rows, sample_columns)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_store(store):
    """
    FastAPI test client whose services use the in-memory store.

    Usage:
        def test_endpoint(test_client_with_store, store):
            response = test_client_with_store.get("/api/catalogs/x/versions")
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("services.import_service.get_catalog_store", return_value=store):
        with patch("services.version_service.get_catalog_store", return_value=store):
            with patch("routes.catalogs.get_catalog_store", return_value=store):
                yield TestClient(app)
