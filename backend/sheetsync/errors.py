from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for failures that abort one table's sync."""


class FetchError(SyncError):
    """The CSV export could not be retrieved."""


class SchemaError(SyncError):
    """CREATE TABLE (or the schema inspection around it) failed."""


class HeaderMismatchError(SyncError):
    """Too many declared headers are missing from the fetched CSV."""


class DescriptorError(ValueError):
    """A table or column descriptor is malformed."""


class ConfigurationError(ValueError):
    """An environment setting could not be parsed."""
