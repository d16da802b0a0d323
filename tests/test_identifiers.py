"""Tests for identifier coercion."""

import pytest

from crm_backend.utils.identifiers import coerce_uuid, is_uuid

VALID = "3f2b8c1e-9a4d-4e6f-8b2a-1c3d5e7f9a0b"


class TestCoerceUuid:
    def test_valid_uuid_is_returned_lowercase(self):
        assert coerce_uuid(VALID.upper()) == VALID

    def test_surrounding_whitespace_is_stripped(self):
        assert coerce_uuid(f"  {VALID} ") == VALID

    @pytest.mark.parametrize("value", ["1", "", "null", "not-a-uuid", 1, None, "3f2b8c1e9a4d4e6f8b2a1c3d5e7f9a0b"])
    def test_placeholder_ids_become_none(self, value):
        assert coerce_uuid(value) is None

    def test_is_uuid_rejects_non_strings(self):
        assert is_uuid(VALID)
        assert not is_uuid(12345)
