import pytest
from pydantic import BaseModel, ValidationError

from logistica_common.rut import normalize_rut, format_rut, validate_rut, compute_check_digit
from logistica_api.schemas import RutStr


class TestNormalize:
    def test_removes_dots_and_spaces(self):
        assert normalize_rut(" 12.345.678-5 ") == "12345678-5"

    def test_uppercases_verifier(self):
        assert normalize_rut("11.111.112-k") == "11111112-K"

    def test_is_idempotent(self):
        assert normalize_rut(normalize_rut("33.333.333-3")) == "33333333-3"

    @pytest.mark.parametrize("value", [None, ""])
    def test_passes_through_empty(self, value):
        assert normalize_rut(value) == value


class TestFormat:
    @pytest.mark.parametrize("raw, expected", [
        ("12345678-5", "12.345.678-5"),
        ("7654321-6", "7.654.321-6"),
        ("123-4", "123-4"),
        ("1234-5", "1.234-5"),
        ("11111112-k", "11.111.112-K"),
    ])
    def test_groups_body_by_thousands(self, raw, expected):
        assert format_rut(raw) == expected

    def test_already_formatted_is_stable(self):
        assert format_rut("12.345.678-5") == "12.345.678-5"

    def test_without_dash_is_returned_unchanged(self):
        assert format_rut("123456785") == "123456785"

    @pytest.mark.parametrize("value", [None, "", 12345])
    def test_non_strings_are_returned_unchanged(self, value):
        assert format_rut(value) == value

    def test_display_then_storage_roundtrip(self):
        stored = "76354771-K"
        assert normalize_rut(format_rut(stored)) == stored


class TestValidate:
    @pytest.mark.parametrize("rut", [
        "12.345.678-5", "12345678-5", "11111111-1", "33333333-3",
        "76354771-K", "76354771-k", "11111112-K", "14-0",
    ])
    def test_valid(self, rut):
        assert validate_rut(rut) is True

    @pytest.mark.parametrize("rut", [
        "12345678-9", "11111111-2", "76354771-1", "abc", "", None, "1", "12a45678-5",
    ])
    def test_invalid(self, rut):
        assert validate_rut(rut) is False

    def test_check_digit_maps_eleven_to_zero_and_ten_to_k(self):
        assert compute_check_digit("14") == "0"
        assert compute_check_digit("11111112") == "K"


class RutModel(BaseModel):
    rut: RutStr


class TestRutField:
    def test_normalizes_on_input(self):
        assert RutModel(rut="12.345.678-5").rut == "12345678-5"

    def test_rejects_bad_check_digit(self):
        with pytest.raises(ValidationError):
            RutModel(rut="12.345.678-9")

    def test_rejects_bad_format(self):
        with pytest.raises(ValidationError):
            RutModel(rut="12345678")
