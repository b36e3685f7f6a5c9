"""Exception hierarchy shared by ingestion and rendering."""

from __future__ import annotations


class IngestError(Exception):
    """A single input file could not be ingested."""


class DataCorruptionError(IngestError):
    """A record violates the structure of the fixed-width schema."""

    line_number: int | None = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.line_number is not None:
            return f"line {self.line_number}: {message}"
        return message


class StationMismatchError(DataCorruptionError):
    """Station codes in a record disagree with the ones in the file name."""


class RangeViolationError(DataCorruptionError):
    """A required field is unparsable or outside its hard bounds."""

    def __init__(self, field: str, value: object, detail: str | None = None) -> None:
        self.field = field
        self.value = value
        message = f"{field}={value!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RenderError(Exception):
    pass


class GeometryError(RenderError):
    """A station or bounding box cannot be mapped onto the requested raster."""


__all__ = [
    "DataCorruptionError",
    "GeometryError",
    "IngestError",
    "RangeViolationError",
    "RenderError",
    "StationMismatchError",
]
