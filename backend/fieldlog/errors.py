"""
Error taxonomy for tracklog validation and import.

Validation reports these as failed results; the importer raises
ImportFailedError at the top level and logs-and-skips per entry.
"""


class TracklogError(ValueError):
    """Base class for tracklog file problems."""


class UnsupportedFormatError(TracklogError):
    """File suffix is not one of the importable formats."""

    def __init__(self, message: str = "Unsupported file format. Please use .zip or .geojson files."):
        super().__init__(message)


class MissingRequiredEntryError(TracklogError):
    """Archive lacks an entry the import cannot do without."""

    def __init__(self, entry: str):
        self.entry = entry
        super().__init__(f"Missing required file: {entry}")


class MalformedTracklogError(TracklogError):
    """tracklog.json parsed but its structure is unusable."""

    def __init__(self, message: str = "Invalid tracklog data: missing breadcrumbs"):
        super().__init__(message)


class InvalidGeoJSONError(TracklogError):
    """GeoJSON root is not a FeatureCollection."""

    def __init__(self, message: str = "Invalid GeoJSON: must be a FeatureCollection"):
        super().__init__(message)


class ImportFailedError(TracklogError):
    """Top-level import failure; wraps the underlying cause."""
