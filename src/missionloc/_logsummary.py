"""Compact renderings of payloads and mission documents for DEBUG logs.

A mission's ``responderLocationHistory`` only ever grows, so logging the
whole document gets more expensive with every update. :func:`summarize_for_log`
keeps the most recent entries of long lists, shortens long strings and prints
coordinates as their exact decimal text.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any


def summarize_for_log(
    value: Any,
    *,
    max_items: int = 5,
    max_string: int = 256,
    _depth: int = 0,
) -> Any:
    """Return a bounded copy of *value* suitable for debug logs.

    Parameters
    ----------
    value : Any
        Payload, mission document or any JSON-like structure.
    max_items : int
        Lists longer than this keep only their last *max_items* entries,
        preceded by a marker counting the dropped ones.
    max_string : int
        Strings longer than this are cut.
    """
    if _depth > 8:
        return "<nested>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, Decimal):
        return str(value)

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}...<{len(value) - max_string} more chars>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"

    if isinstance(value, Mapping):
        return {
            str(k): summarize_for_log(v, max_items=max_items, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        items = list(value)
        dropped = len(items) - max_items
        kept = items[-max_items:] if dropped > 0 else items
        summary = [summarize_for_log(v, max_items=max_items, max_string=max_string, _depth=_depth + 1) for v in kept]
        if dropped > 0:
            return [f"<{dropped} earlier>", *summary]
        return summary

    return repr(value)
