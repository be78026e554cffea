"""Authentication — API key validation for the HTTP transport."""

from __future__ import annotations

import hmac


def validate_api_key(provided: str, expected: str) -> bool:
    """Constant-time API key comparison."""
    return hmac.compare_digest(provided.encode(), expected.encode())
