"""
Mapping functions between stored rows and view values.

Catalog columns are heterogeneous across data sources: strength may arrive as
a number or as text, unit is an enum, and the dosage form lives in the free
text description. Everything that turns such values into view fields goes
through this module.
"""

from datetime import datetime, timezone
from decimal import Decimal
import enum
import math
from typing import Any, Optional

from app.domain.pharmacy.models import Medication


def strength_to_text(value: Any) -> Optional[str]:
    """Render a numeric or textual strength as a display string."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if value == int(value):
            return str(int(value))
        return format(Decimal(str(value)).normalize(), "f")
    return str(value)


def unit_to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def form_from_description(description: Optional[str]) -> Optional[str]:
    if description is None or not description.strip():
        return None
    return description.strip()


def price_or_zero(value: Any) -> float:
    """Catalog price as a float; anything that is not a number counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        price = float(value)
        return price if math.isfinite(price) else 0.0
    return 0.0


def status_to_text(value: Any, default: str = "ready") -> str:
    if value is None:
        return default
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def timestamp_to_text(value: Optional[datetime]) -> Optional[str]:
    """
    ISO-8601 UTC text with millisecond precision, e.g.
    ``2024-03-01T09:30:00.000Z``. Naive datetimes are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_medicine_view(medication: Medication) -> dict:
    return {
        "id": medication.id,
        "name": medication.name,
        "strength": strength_to_text(medication.strength),
        "form": form_from_description(medication.description),
        "unit": unit_to_text(medication.unit),
        "price": price_or_zero(medication.price),
    }
