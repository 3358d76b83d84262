"""Exception taxonomy for the exposure pipeline.

Validation errors (bad caller parameters, degenerate geometry, ambiguous layer
naming) are fatal for the call that raised them. Raster service errors are
retryable when they are timeouts or pixel-budget limits, and end up as annotated
partial failures once retries run out.
Missing data is not an error: it is carried as ``None``.
"""
from __future__ import annotations


class ExposureError(Exception):
    """Base class for every error raised by route_exposure."""


class InvalidCellSize(ExposureError, ValueError):
    pass


class InvalidInterval(ExposureError, ValueError):
    pass


class EmptyGeometry(ExposureError, ValueError):
    pass


class DuplicateLayerKey(ExposureError, ValueError):
    def __init__(self, key: str, names: list[str]):
        self.key = key
        self.names = names
        super().__init__(f"Layer names {names} all sanitize to key '{key}'")


class RasterServiceError(ExposureError):
    """Remote evaluation failed. Subclasses below are worth retrying."""

    retryable = False


class RasterTimeout(RasterServiceError):
    retryable = True


class PixelBudgetExceeded(RasterServiceError):
    retryable = True


class PipelineCancelled(ExposureError):
    pass
