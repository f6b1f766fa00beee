"""Tests for the error hierarchy and error factories."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import pytest

from docvault.shared.errors import (
    ApplicationError,
    DocVaultError,
    DomainError,
    ErrorCode,
    ErrorContext,
    FetchFailure,
    InfrastructureError,
    ParseError,
    TransportError,
    create_cache_error,
    create_cli_error,
    create_validation_error,
)
from docvault.shared.types import ErrorKind, TransportErrorKind


class Color(Enum):
    RED = "red"


class TestErrorContext:
    def test_safe_dict_masks_locator(self):
        context = ErrorContext(operation="resolve", key="B0001", locator="https://docs.test/B0001")

        assert context.safe_dict() == {
            "operation": "resolve",
            "key": "B0001",
            "additional_data": {},
        }

    def test_safe_dict_custom_mask(self):
        context = ErrorContext(operation="resolve", key="B0001", locator="https://docs.test/B0001")

        data = context.safe_dict(mask_keys=("key",))

        assert data["locator"] == "https://docs.test/B0001"
        assert "key" not in data

    def test_additional_data_coerced(self):
        context = ErrorContext(additional_data={"path": Path("a/b"), "color": Color.RED, "n": 1})

        assert context.additional_data == {"path": str(Path("a/b")), "color": "red", "n": 1}

    def test_additional_data_rejects_objects(self):
        with pytest.raises(TypeError, match="Cannot coerce"):
            ErrorContext(additional_data={"bad": object()})


class TestErrorHierarchy:
    def test_str_and_to_dict(self):
        original = ValueError("boom")
        error = ApplicationError(
            ErrorCode.APPLICATION_ERROR,
            "Something failed",
            ErrorContext(operation="resolve"),
            original,
        )

        assert str(error) == "APPLICATION_ERROR: Something failed"
        assert error.to_dict() == {
            "code": "APPLICATION_ERROR",
            "message": "Something failed",
            "context": {"operation": "resolve", "additional_data": {}},
            "original_error": "boom",
        }

    @pytest.mark.parametrize(
        ("kind", "code"),
        [
            (TransportErrorKind.TIMEOUT, ErrorCode.TRANSPORT_TIMEOUT),
            (TransportErrorKind.CONNECTION, ErrorCode.TRANSPORT_CONNECTION_ERROR),
            (TransportErrorKind.BLOCKED, ErrorCode.TRANSPORT_BLOCKED),
            (TransportErrorKind.HTTP_STATUS, ErrorCode.TRANSPORT_HTTP_ERROR),
            (TransportErrorKind.INVALID_RESPONSE, ErrorCode.TRANSPORT_INVALID_RESPONSE),
        ],
    )
    def test_transport_error_codes(self, kind, code):
        error = TransportError(kind, "failed")

        assert error.code is code
        assert isinstance(error, InfrastructureError)

    def test_parse_error_is_domain_error(self):
        error = ParseError("bad payload")

        assert isinstance(error, DomainError)
        assert error.code is ErrorCode.PARSING_ERROR

    def test_fetch_failure_to_dict(self):
        failure = FetchFailure(
            kind=ErrorKind.PARSING,
            user_message="Could not read",
            technical_message="Invalid JSON",
            attempts=3,
            recoverable=True,
            partial_data={"title": "Widget"},
        )

        data = failure.to_dict()

        assert isinstance(failure, DocVaultError)
        assert data["code"] == "FETCH_FAILED"
        assert data["kind"] == "parsing"
        assert data["attempts"] == 3
        assert data["partial_data"] == {"title": "Widget"}


class TestFactories:
    def test_validation_error(self):
        error = create_validation_error("bad key", field="key", operation="resolve")

        assert error.code is ErrorCode.VALIDATION_ERROR
        assert error.context.additional_data == {"field": "key"}

    def test_cache_error(self):
        error = create_cache_error(ErrorCode.CACHE_WRITE_FAILED, "disk full", key="B0001", operation="kv_set")

        assert isinstance(error, InfrastructureError)
        assert error.context.key == "B0001"

    def test_cli_error(self):
        error = create_cli_error("failed", "resolve", exit_code=2)

        assert error.code is ErrorCode.CLI_UNEXPECTED_ERROR
        assert error.command == "resolve"
        assert error.exit_code == 2
