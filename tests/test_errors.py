"""
Error payload and status code normalization tests.
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from couchdb_view_actions.core.errors import (
    CredentialError,
    StoreError,
    ValidationError,
    extract_status_code,
    to_plain_error,
)


class ClientError(Exception):
    """Stand-in for a store client error carrying live objects."""

    def __init__(self, message, status_code=None, response=None):
        super().__init__(message)
        if status_code is not None:
            self.statusCode = status_code
        self.response = response
        self.connection = object()


class TestExtractStatusCode:

    def test_top_level_status_code(self):
        assert extract_status_code(ClientError("boom", status_code=409)) == 409

    def test_status_code_on_response(self):
        error = ClientError("boom", response=SimpleNamespace(statusCode=404))

        assert extract_status_code(error) == 404

    def test_top_level_wins_over_response(self):
        error = ClientError("boom", status_code=409, response=SimpleNamespace(statusCode=404))

        assert extract_status_code(error) == 409

    def test_mapping_shapes(self):
        assert extract_status_code({"statusCode": 500}) == 500
        assert extract_status_code({"response": {"statusCode": 401}}) == 401

    def test_httpx_status_error(self):
        request = httpx.Request("GET", "https://account.cloudant.com/db/doc")
        response = httpx.Response(404, request=request)
        error = httpx.HTTPStatusError("not found", request=request, response=response)

        assert extract_status_code(error) == 404

    def test_missing_status_code(self):
        assert extract_status_code(ClientError("boom")) is None
        assert extract_status_code({}) is None


class TestStoreError:

    def test_from_exception_normalizes_response_status(self):
        error = StoreError.from_exception(ClientError("missing", response=SimpleNamespace(statusCode=404)))

        assert error.status_code == 404
        assert error.payload["statusCode"] == 404
        assert error.payload["message"] == "missing"
        assert error.payload["name"] == "ClientError"
        assert "response" not in error.payload
        assert "connection" not in error.payload

    def test_from_exception_payload_is_serializable(self):
        error = StoreError.from_exception(ClientError("boom", status_code=500))

        assert json.loads(json.dumps(error.payload)) == error.payload

    def test_from_exception_keeps_store_error(self):
        original = StoreError.from_response(409, {"error": "conflict", "reason": "Document update conflict."})

        assert StoreError.from_exception(original) is original

    def test_from_exception_without_status(self):
        error = StoreError.from_exception(RuntimeError("connection reset"))

        assert "statusCode" not in error.payload
        assert error.status_code is None
        assert error.payload["message"] == "connection reset"

    def test_from_response(self):
        error = StoreError.from_response(404, {"error": "not_found", "reason": "missing"})

        assert error.payload == {
            "name": "StoreError",
            "error": "not_found",
            "reason": "missing",
            "message": "missing",
            "statusCode": 404,
        }
        assert str(error) == "missing"

    def test_from_response_without_body(self):
        error = StoreError.from_response(502, None)

        assert error.payload["message"] == "HTTP 502"
        assert error.payload["statusCode"] == 502


class TestPlainErrors:

    def test_mapping_error_drops_nested_objects(self):
        plain = to_plain_error({
            "name": "Error",
            "message": "boom",
            "statusCode": 500,
            "response": {"statusCode": 500, "headers": {}},
            "request": {"uri": "https://x"},
        })

        assert plain == {"name": "Error", "message": "boom", "statusCode": 500}

    @pytest.mark.parametrize("error_class", [ValidationError, CredentialError])
    def test_string_payload_errors(self, error_class):
        error = error_class("dbname is required.")

        assert error.payload == "dbname is required."
        assert str(error) == "dbname is required."
