"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
from typing import Any


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields.

    Values are case-folded first so ``A@x.com`` and ``a@x.com`` correlate to the
    same token, matching how login identifiers are stored.
    """
    text = str(value or "").strip().lower()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"
