"""Utility modules."""

from intake_api.utils.pagination import (
    PageCursor,
    clamp_limit,
    decode_cursor,
    encode_cursor,
)
