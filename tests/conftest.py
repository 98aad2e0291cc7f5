"""
Pytest configuration for couchdb-view-actions tests.

This file ensures that the src directory is in the Python path
so that tests can import from couchdb_view_actions, and enables the memory
DAL for all tests.
"""
import sys
import os
from pathlib import Path

import pytest

# Force memory DAL backend for all tests
os.environ["DAL_BACKEND"] = "memory"

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def basic_message():
    """Action message with basic credentials and all required fields"""
    return {
        "host": "account.cloudant.com",
        "username": "account",
        "password": "secret",
        "dbname": "testdb",
        "docid": "myview",
        "viewname": "v1",
    }
