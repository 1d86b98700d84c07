"""
Exception taxonomy for the catalog pipeline.

Bootstrap and import errors are fatal and propagate to the startup routine.
Inventory feed errors never leave the synchronizer.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base error for catalog pipeline failures."""


class StoreBootstrapError(CatalogError):
    """Raised when the store cannot be opened, created, or seeded."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"Unable to bootstrap TPL store at '{path}': {message}")
        self.path = path


class CatalogImportError(CatalogError):
    """Raised when the catalog export cannot be imported as a whole."""


class CatalogRecordError(CatalogImportError, ValueError):
    """Raised when a record's mandatory field is missing or malformed."""

    def __init__(self, *, opdb_id: str | None, field: str, value: object, reason: str) -> None:
        super().__init__(f"Catalog record {opdb_id or '<unknown>'}: field '{field}' {reason} (value={value!r}).")
        self.opdb_id = opdb_id
        self.field = field
        self.value = value


class InventoryFeedError(CatalogError):
    """Raised when the Pinball Map inventory feed cannot be used."""

    def __init__(self, message: str, *, url: str | None = None, details: object = None) -> None:
        super().__init__(message)
        self.url = url
        self.details = details
