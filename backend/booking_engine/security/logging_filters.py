"""Logging filters that scrub payment and credential data."""

from __future__ import annotations

import logging
import re
from typing import Any

REDACTED = "**REDACTED**"

_PATTERNS = (
    re.compile(r"Authorization: Bearer\s+[\w\.-]+", re.IGNORECASE),
    # Gateway object ids: payment intents, charges, refunds, setup intents.
    re.compile(r"\b(?:pi|ch|re|seti)_[A-Za-z0-9]{8,}\b"),
    re.compile(r"payment_reference[\"']?\s*[:=]\s*[\"']?[^\"',\s}]+", re.IGNORECASE),
)


def scrub(value: str) -> str:
    for pattern in _PATTERNS:
        value = pattern.sub(REDACTED, value)
    return value


def _scrub_arg(arg: Any) -> Any:
    if isinstance(arg, str):
        return scrub(arg)
    if isinstance(arg, dict):
        return {key: _scrub_arg(item) for key, item in arg.items()}
    return arg


class SensitiveFilter(logging.Filter):
    """Redact bearer tokens and payment references before records are emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_scrub_arg(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = _scrub_arg(record.args)
        return True


__all__ = ["REDACTED", "SensitiveFilter", "scrub"]
