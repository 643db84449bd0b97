"""Shared utilities for the marketplace backend.

This package contains reusable utilities that are shared across
multiple route files to reduce code duplication.
"""

from neighborly.utils.auth import (
    token_required,
    token_optional,
    create_access_token,
)
from neighborly.utils.timeutils import utcnow, utc_isoformat

__all__ = [
    'token_required',
    'token_optional',
    'create_access_token',
    'utcnow',
    'utc_isoformat',
]
