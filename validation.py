"""
Validation and normalization of submitted book payloads.

Both functions work on the raw JSON object sent by the client. Validation
collects every problem instead of stopping at the first one, so the client can
show all of them at once.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

from errors import InvalidIdentifier

VALID_GENRES = [
    "Фантастика", "Детектив", "Роман", "Классика",
    "Научпоп", "Фэнтези", "Триллер", "Биография",
    "История", "Другое",
]

REQUIRED_FIELDS = ["title", "author", "genre"]
TEXT_FIELDS = ["title", "author", "description", "notes", "coverUrl"]

MIN_YEAR = 1000
MIN_RATING = 0
MAX_RATING = 5

FALSY_STRINGS = {"", "false", "0", "no", "off"}


def _supplied(data: Dict[str, Any], field: str) -> bool:
    return data.get(field) is not None


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _parse_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_STRINGS
    return bool(value)


def current_year() -> int:
    return datetime.now().year


def validate_book(data: Dict[str, Any], is_update: bool = False) -> List[str]:
    """Return the list of validation errors for a payload; empty when valid.

    On create the required fields must be present and non-blank. On update only
    the supplied fields are checked, and a supplied title or author must still
    be non-blank.
    """
    errors: List[str] = []

    for field in TEXT_FIELDS:
        if _supplied(data, field) and not isinstance(data[field], str):
            errors.append(f'Field "{field}" must be a string')

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        blank = isinstance(value, str) and not value.strip()
        if not is_update and (value is None or blank):
            errors.append(f'Field "{field}" is required')
        elif is_update and blank and field != "genre":
            errors.append(f'Field "{field}" must not be empty')

    genre = data.get("genre")
    if genre is not None and genre not in VALID_GENRES:
        # an empty genre on create is already reported as missing
        if is_update or genre != "":
            errors.append(f"Genre must be one of: {', '.join(VALID_GENRES)}")

    year = data.get("year")
    if year is not None and not (isinstance(year, str) and not year.strip()):
        parsed = _parse_int(year)
        this_year = current_year()
        if parsed is None or parsed < MIN_YEAR or parsed > this_year:
            errors.append(f"Year must be between {MIN_YEAR} and {this_year}")

    if _supplied(data, "rating"):
        rating = _parse_float(data["rating"])
        if rating is None or rating < MIN_RATING or rating > MAX_RATING:
            errors.append(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    return errors


def prepare_book(data: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
    """Normalize a validated payload into the document written to the store.

    Call only after validate_book returned no errors. On update, fields the
    client did not send are left out so they keep their stored values.
    """
    prepared: Dict[str, Any] = {}

    for field in TEXT_FIELDS:
        if _supplied(data, field):
            prepared[field] = data[field].strip()

    # genre comes from a fixed list, stored verbatim
    if _supplied(data, "genre"):
        prepared["genre"] = data["genre"]

    year = data.get("year")
    if year is not None and not (isinstance(year, str) and not year.strip()):
        prepared["year"] = _parse_int(year)

    if _supplied(data, "rating"):
        prepared["rating"] = _parse_float(data["rating"])
    elif not is_update:
        prepared["rating"] = 0.0

    if _supplied(data, "isRead"):
        prepared["isRead"] = _to_bool(data["isRead"])
    elif not is_update:
        prepared["isRead"] = False

    if not is_update:
        prepared["dateAdded"] = datetime.now(timezone.utc)

    return prepared


def parse_object_id(value: str) -> ObjectId:
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidIdentifier(value)
    return ObjectId(value)
