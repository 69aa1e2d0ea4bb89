"""Tests for StoreResult."""

import pytest

from clipvote.core.result import StoreResult, StoreStatus


@pytest.mark.unit
class TestStoreResult:
    def test_ok_with_empty_value_is_not_a_fallback(self):
        result = StoreResult.ok([])
        assert result.is_ok
        assert not result.should_fallback
        assert result.unwrap_or(["default"]) == []

    def test_unavailable_falls_back(self):
        result = StoreResult.unavailable("not configured")
        assert result.status is StoreStatus.UNAVAILABLE
        assert result.should_fallback
        assert result.unwrap_or(0) == 0

    def test_error_keeps_message(self):
        result = StoreResult.failed("WRONGTYPE")
        assert result.status is StoreStatus.ERROR
        assert result.error == "WRONGTYPE"
        assert result.should_fallback
