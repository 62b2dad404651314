"""Base model and coordinate types shared by missionloc models.

Every JSON-facing model inherits from :class:`MissionLocBaseModel` which
provides ``alias_generator=to_camel`` so the camelCase wire keys used by the
emergency-response services map to snake_case fields.

Coordinates are carried as :class:`~decimal.Decimal` end to end: JSON is
read with ``parse_float=Decimal`` and written with simplejson, which emits
the exact decimal digits as a JSON number.
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

import simplejson
from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def parse_decimal(value: Any) -> Decimal:
    """Convert a JSON number (or numeric string) to a finite ``Decimal``.

    Floats go through their shortest ``repr`` so ``34.2163`` stays
    ``Decimal("34.2163")`` instead of the binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a coordinate")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal number: {value!r}") from exc
    else:
        raise ValueError(f"not a decimal number: {value!r}")
    if not result.is_finite():
        raise ValueError("coordinate must be finite")
    return result


def parse_strict_decimal(value: Any) -> Decimal:
    """Like :func:`parse_decimal` but only accepts JSON numbers."""
    if isinstance(value, str):
        raise ValueError("coordinate must be a number, not a string")
    return parse_decimal(value)


def dumps_json(value: Any) -> str:
    """Compact JSON for *value*; ``Decimal`` is written as its exact digits."""
    return simplejson.dumps(value, use_decimal=True, separators=(",", ":"))


def loads_json(text: str | bytes) -> Any:
    """Parse JSON, reading every non-integral number as ``Decimal``."""
    return json.loads(text, parse_float=Decimal)


Coordinate = Annotated[Decimal, BeforeValidator(parse_decimal)]
"""Lenient coordinate: JSON number or numeric string."""

StrictCoordinate = Annotated[Decimal, BeforeValidator(parse_strict_decimal)]
"""Coordinate that must arrive as a JSON number."""


class MissionLocBaseModel(BaseModel):
    """Base for JSON-facing models (camelCase on the wire)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
