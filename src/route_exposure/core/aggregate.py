from __future__ import annotations

from typing import Sequence

from route_exposure.core.models import ExposureSummary, LayerSampleResult


def aggregate_samples(layer_name: str, samples: Sequence[LayerSampleResult]) -> ExposureSummary:
    """
    Reduce one layer's samples to mean/min/max over valid values only.

    NoData samples are counted but never treated as zero; failed samples are
    listed by distance so the caller can see which points are missing. The
    samples themselves are kept on the summary, in the order given.
    """
    valid = [s.value for s in samples if not s.failed and s.value is not None]
    nodata = sum(1 for s in samples if not s.failed and s.value is None)
    failed = [s.point.distance_m for s in samples if s.failed]

    if not valid:
        return ExposureSummary(
            layer_name=layer_name,
            sample_count=0,
            nodata_count=nodata,
            failed_distances_m=failed,
            samples=list(samples),
        )

    return ExposureSummary(
        layer_name=layer_name,
        mean=sum(valid) / len(valid),
        min=min(valid),
        max=max(valid),
        sample_count=len(valid),
        nodata_count=nodata,
        failed_distances_m=failed,
        samples=list(samples),
    )
