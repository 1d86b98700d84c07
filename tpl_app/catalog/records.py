"""
Catalog record contract for the Open Pinball Database export.

Turns one raw JSON object from the export into a ``CatalogRecord`` with every
optional field resolved through explicit presence rules:

* numeric fields are kept only when present and non-null (never coerced to 0)
* optional dates parse as ``YYYY-MM-DD`` (UTC midnight) or become ``None``
* the machine's own ``updated_at`` is mandatory and raises when invalid
* the backglass image id is the first UUID-shaped token of its large URL
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .errors import CatalogRecordError

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
BACKGLASS_IMAGE_TYPE = "backglass"
UUID_PATTERN = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
FEATURE_SEPARATOR = ","


@dataclass(frozen=True)
class ManufacturerPayload:
    """Manufacturer sub-object of a catalog record."""

    manufacturer_id: int
    name: str
    full_name: str
    updated_at: int | None


@dataclass(frozen=True)
class CatalogRecord:
    """Normalized catalog record ready for insertion."""

    opdb_id: str
    name: str
    ipdb_id: int | None
    manufacture_date: int | None
    updated_at: int
    features: tuple[str, ...]
    backglass_image_uuid: str | None
    manufacturer: ManufacturerPayload

    @property
    def feature_key(self) -> str | None:
        """Canonical comma-joined tag string, or ``None`` when untagged."""
        return canonical_feature_key(self.features)


class InvalidRecord(ValueError):
    """A record that cannot be loaded and should be skipped."""


def canonical_feature_key(features: Sequence[str]) -> str | None:
    """
    Join feature tags in their given order.

    Order is part of the key: ``["A", "B"]`` and ``["B", "A"]`` are different
    combinations.
    """
    if not features:
        return None
    return FEATURE_SEPARATOR.join(features)


def parse_date(value: Any) -> int | None:
    """Epoch seconds for a ``YYYY-MM-DD`` string at UTC midnight, else ``None``."""
    if not isinstance(value, str):
        return None
    token = value.strip()
    if not token:
        return None
    # strptime alone accepts unpadded months and days
    if not DATE_PATTERN.fullmatch(token):
        return None
    try:
        parsed = datetime.strptime(token, DATE_FORMAT)
    except ValueError:
        return None
    return int(parsed.replace(tzinfo=timezone.utc).timestamp())


def parse_optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def extract_uuid(value: Any) -> str | None:
    """First RFC-4122-shaped substring of ``value``."""
    if not isinstance(value, str):
        return None
    match = UUID_PATTERN.search(value)
    return match.group(0) if match else None


def find_backglass_url(images: Any) -> str | None:
    """``urls.large`` of the first image whose ``type`` is ``backglass``."""
    if not isinstance(images, list):
        return None
    for image in images:
        if not isinstance(image, Mapping) or image.get("type") != BACKGLASS_IMAGE_TYPE:
            continue
        urls = image.get("urls")
        if isinstance(urls, Mapping):
            large = urls.get("large")
            return large if isinstance(large, str) else None
        return None
    return None


def extract_features(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if item is not None)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _parse_manufacturer(raw: Any, *, opdb_id: str) -> ManufacturerPayload:
    if not isinstance(raw, Mapping):
        raise InvalidRecord(f"Catalog record {opdb_id} has no manufacturer object.")
    manufacturer_id = parse_optional_int(raw.get("manufacturer_id"))
    if manufacturer_id is None:
        raise InvalidRecord(f"Catalog record {opdb_id} has no manufacturer_id.")
    return ManufacturerPayload(
        manufacturer_id=manufacturer_id,
        name=_text(raw.get("name")),
        full_name=_text(raw.get("full_name")),
        updated_at=parse_date(raw.get("updated_at")),
    )


def parse_catalog_record(raw: Any) -> CatalogRecord:
    """
    Build a ``CatalogRecord`` from one element of the export array.

    Raises:
        InvalidRecord: the record lacks an identifier needed to store it and
            should be skipped.
        CatalogRecordError: the mandatory ``updated_at`` date is missing or
            unparsable; the whole import must abort.
    """
    if not isinstance(raw, Mapping):
        raise InvalidRecord(f"Catalog record is not an object: {type(raw).__name__}.")

    opdb_id = raw.get("opdb_id")
    if not isinstance(opdb_id, str) or not opdb_id.strip():
        raise InvalidRecord("Catalog record has no opdb_id.")
    opdb_id = opdb_id.strip()

    raw_updated_at = raw.get("updated_at")
    updated_at = parse_date(raw_updated_at)
    if updated_at is None:
        raise CatalogRecordError(
            opdb_id=opdb_id,
            field="updated_at",
            value=raw_updated_at,
            reason=f"must be a {DATE_FORMAT} date",
        )

    return CatalogRecord(
        opdb_id=opdb_id,
        name=_text(raw.get("name")),
        ipdb_id=parse_optional_int(raw.get("ipdb_id")),
        manufacture_date=parse_date(raw.get("manufacture_date")),
        updated_at=updated_at,
        features=extract_features(raw.get("features")),
        backglass_image_uuid=extract_uuid(find_backglass_url(raw.get("images"))),
        manufacturer=_parse_manufacturer(raw.get("manufacturer"), opdb_id=opdb_id),
    )
