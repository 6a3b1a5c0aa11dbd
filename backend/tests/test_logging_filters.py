"""Tests for log redaction."""

import logging

from booking_engine.security.logging_filters import SensitiveFilter


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_payment_references_are_redacted() -> None:
    record = _record("Charge %s captured for %s", "pi_3NqLx2Abc9", "consumer-1")

    SensitiveFilter().filter(record)

    assert record.getMessage() == "Charge **REDACTED** captured for consumer-1"


def test_bearer_tokens_in_messages_are_redacted() -> None:
    record = _record("Forwarded Authorization: Bearer abc.def-ghi")

    SensitiveFilter().filter(record)

    assert "abc.def-ghi" not in record.getMessage()


def test_payment_reference_fields_are_redacted() -> None:
    record = _record("Gateway payload %s", '{"payment_reference": "txn-889"}')

    SensitiveFilter().filter(record)

    assert "txn-889" not in record.getMessage()
