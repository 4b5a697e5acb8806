"""
Test suite for the catalog import service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_import_service.py -v
"""
