from decimal import Decimal

import pytest

from titlechain.domain.errors import InvalidInputError
from titlechain.domain.validation import (
    normalize_metadata,
    raise_for_failures,
    sanitize_string,
    to_decimal,
    validate_document_id,
    validate_email,
    validate_loan_amount,
    validate_property_address,
    validate_transaction_id,
    validate_transaction_input,
)


class TestIdentifierRules:
    @pytest.mark.parametrize("value", ["TX-2024-8492", "TX-2025-0001", "TX-2024-12345"])
    def test_valid_transaction_ids(self, value):
        assert validate_transaction_id(value).passed

    @pytest.mark.parametrize("value", ["TX-24-8492", "tx-2024-8492", "TX-2024-12", "2024-8492"])
    def test_invalid_transaction_ids(self, value):
        check = validate_transaction_id(value)
        assert not check.passed
        assert "TX-YYYY-NNNN" in check.message

    def test_document_id(self):
        assert validate_document_id("DOC-1710000000000").passed
        assert not validate_document_id("DOC-17").passed

    @pytest.mark.parametrize("value", ["officer@bank.com", "a.b@c.io"])
    def test_valid_emails(self, value):
        assert validate_email(value).passed

    @pytest.mark.parametrize("value", ["officer", "a@b", "two words@bank.com", "x@y."])
    def test_invalid_emails(self, value):
        assert not validate_email(value).passed


class TestLoanAmount:
    @pytest.mark.parametrize("value", [1, "0.01", Decimal("24500000"), 12000000.5, "999999999999"])
    def test_accepts(self, value):
        assert validate_loan_amount(value).passed

    @pytest.mark.parametrize(
        "value, message",
        [
            (0, "Amount must be positive"),
            (-5, "Amount must be positive"),
            ("1000000000000", "Amount exceeds maximum"),
            ("10.001", "Amount must have at most 2 decimal places"),
            ("ten", "Amount must be a number"),
            ("NaN", "Amount must be a number"),
            (True, "Amount must be a number"),
        ],
    )
    def test_rejects(self, value, message):
        check = validate_loan_amount(value)
        assert not check.passed
        assert check.message == message

    def test_float_goes_through_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")


class TestStrings:
    def test_sanitize(self):
        assert sanitize_string("  1200   Market\x00 St  ") == "1200 Market St"

    def test_property_address_bounds(self):
        assert validate_property_address("1200 Market St, Philadelphia, PA").passed
        assert validate_property_address("Main St").message == "Address too short"
        assert validate_property_address("x" * 501).message == "Address too long"


class TestTransactionInput:
    def test_collects_every_failure(self):
        checks = validate_transaction_input("short", -1, "", "Borrower LLC", "TX-1")
        with pytest.raises(InvalidInputError) as excinfo:
            raise_for_failures(checks)
        assert len(excinfo.value.errors) == 4
        assert "Address too short" in str(excinfo.value)

    def test_valid_input_passes(self):
        checks = validate_transaction_input(
            "1200 Market St, Philadelphia, PA", "24500000", "Keystone", "Market Street LLC",
        )
        raise_for_failures(checks)


class TestMetadata:
    def test_primitives_kept(self):
        meta = normalize_metadata({"fileName": "note.pdf", "fileSize": 42, "final": True, "x": None})
        assert dict(meta) == {"fileName": "note.pdf", "fileSize": 42, "final": True, "x": None}

    def test_nested_values_become_canonical_json(self):
        meta = normalize_metadata({"parties": {"b": 2, "a": 1}, "amount": Decimal("1.50")})
        assert meta["parties"] == '{"a":1,"b":2}'
        assert meta["amount"] == "1.50"

    def test_read_only(self):
        meta = normalize_metadata({"k": "v"})
        with pytest.raises(TypeError):
            meta["k"] = "other"

    def test_empty(self):
        assert dict(normalize_metadata(None)) == {}
