"""
Boundary validation rules for ledger input.

This module contains pure functions that check identifier formats and
transaction fields before they reach the ledger. No side effects, no I/O.

The ledger itself assumes well-formed input: it only checks that the
referenced transaction or document exists. Everything here runs at the
edge (API schemas, create_transaction).

Design Decisions:
- Each rule returns ValidationCheck with pass/fail and a message
- Decimal for loan amounts; floats are converted through their repr
- Metadata is flattened to a read-only map of primitive values so the
  event log keeps a stable textual representation
"""

import json
import re
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Mapping

from .errors import InvalidInputError
from .identifiers import DOCUMENT_ID_PATTERN, TRANSACTION_ID_PATTERN
from .models import MetadataValue, ValidationCheck

HASH_PATTERN = re.compile(r"^[a-f0-9]{64}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")

MAX_LOAN_AMOUNT = Decimal("999999999999")
CENT = Decimal("0.01")


def _check(rule_name: str, passed: bool, ok: str, failed: str, **details: Any) -> ValidationCheck:
    return ValidationCheck(
        rule_name=rule_name,
        passed=passed,
        message=ok if passed else failed,
        details=details,
    )


def validate_transaction_id(value: str) -> ValidationCheck:
    return _check(
        "transaction_id_format",
        bool(TRANSACTION_ID_PATTERN.match(value)),
        "Transaction ID format: OK",
        "Transaction ID must be in format TX-YYYY-NNNN",
        value=value,
    )


def validate_document_id(value: str) -> ValidationCheck:
    return _check(
        "document_id_format",
        bool(DOCUMENT_ID_PATTERN.match(value)),
        "Document ID format: OK",
        "Document ID must be in format DOC-timestamp",
        value=value,
    )


def validate_email(value: str) -> ValidationCheck:
    passed = 5 <= len(value) <= 254 and bool(EMAIL_PATTERN.match(value))
    return _check("email_format", passed, "Email format: OK", "Invalid email format", value=value)


def validate_hash(value: str) -> ValidationCheck:
    return _check(
        "hash_format",
        bool(HASH_PATTERN.match(value)),
        "Hash format: OK",
        "Invalid SHA-256 hash format",
        value=value,
    )


def to_decimal(amount: Decimal | int | float | str) -> Decimal | None:
    """Convert to Decimal, or None if the value is not a finite number."""
    if isinstance(amount, bool):
        return None
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def validate_loan_amount(amount: Decimal | int | float | str) -> ValidationCheck:
    """
    Validate a loan amount.

    Rule: 0 < amount <= 999,999,999,999 with at most 2 decimal places.
    """
    value = to_decimal(amount)
    if value is None:
        return _check("loan_amount", False, "", "Amount must be a number", value=str(amount))
    if value <= 0:
        return _check("loan_amount", False, "", "Amount must be positive", value=str(value))
    if value > MAX_LOAN_AMOUNT:
        return _check("loan_amount", False, "", "Amount exceeds maximum", value=str(value))
    return _check(
        "loan_amount",
        value == value.quantize(CENT),
        "Loan amount: OK",
        "Amount must have at most 2 decimal places",
        value=str(value),
    )


def validate_party_name(field_name: str, value: str) -> ValidationCheck:
    cleaned = sanitize_string(value)
    return _check(
        f"{field_name}_length",
        1 <= len(cleaned) <= 200,
        f"{field_name}: OK",
        f"{field_name} must be 1-200 characters",
    )


def validate_property_address(value: str) -> ValidationCheck:
    cleaned = sanitize_string(value)
    passed = 10 <= len(cleaned) <= 500
    return _check(
        "property_address_length",
        passed,
        "Property address: OK",
        "Address too short" if len(cleaned) < 10 else "Address too long",
    )


def sanitize_string(value: str) -> str:
    """Trim, drop control characters and collapse whitespace."""
    return re.sub(r"\s+", " ", CONTROL_CHARS.sub("", value.strip()))


def validate_transaction_input(
    property_address: str,
    loan_amount: Decimal | int | float | str,
    lender_name: str,
    borrower_name: str,
    transaction_id: str | None = None,
) -> list[ValidationCheck]:
    """Run every rule that applies to a new Transaction."""
    checks = [
        validate_property_address(property_address),
        validate_loan_amount(loan_amount),
        validate_party_name("lender_name", lender_name),
        validate_party_name("borrower_name", borrower_name),
    ]
    if transaction_id is not None:
        checks.append(validate_transaction_id(transaction_id))
    return checks


def raise_for_failures(checks: list[ValidationCheck]) -> None:
    """
    Raises:
        InvalidInputError: Listing the message of every failed check
    """
    failures = [check.message for check in checks if not check.passed]
    if failures:
        raise InvalidInputError(failures)


def normalize_metadata(metadata: Mapping[Any, Any] | None) -> Mapping[str, MetadataValue]:
    """
    Flatten event metadata to a read-only string-keyed map of primitives.

    Nested or non-primitive values are stored as canonical JSON strings.
    """
    if not metadata:
        return MappingProxyType({})

    flat: dict[str, MetadataValue] = {}
    for key, value in metadata.items():
        if value is None or isinstance(value, (str, bool, int, float)):
            flat[str(key)] = value
        elif isinstance(value, Decimal):
            flat[str(key)] = str(value)
        else:
            flat[str(key)] = json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return MappingProxyType(flat)
