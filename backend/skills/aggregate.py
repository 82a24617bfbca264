"""
Aggregation skill — fixed-stride downsampling for oversized datasets.

Lossy but deterministic: the same data and budget always keep the same
indices, and labels are filtered with the same stride so label-indexed
datasets stay aligned.
"""

from __future__ import annotations

import logging
import math

from core.models import ChartData

logger = logging.getLogger("uvicorn.error")

DEFAULT_MAX_POINTS = 100


def total_points(data: ChartData) -> int:
    return sum(len(ds.data) for ds in data.datasets)


def needs_aggregation(data: ChartData, max_points: int = DEFAULT_MAX_POINTS) -> bool:
    return total_points(data) > max_points


def aggregate(data: ChartData, max_points: int = DEFAULT_MAX_POINTS) -> ChartData:
    """
    Keep every ``stride``-th point, where stride = ceil(total / max_points).

    Returns ``data`` itself (not a copy) when it already fits the budget.
    """
    if max_points < 1:
        raise ValueError("max_points must be >= 1")

    total = total_points(data)
    if total <= max_points:
        return data

    stride = math.ceil(total / max_points)
    logger.info("Downsampling %d points to budget %d (stride %d)", total, max_points, stride)

    datasets = [
        ds.model_copy(update={"data": ds.data[::stride]})
        for ds in data.datasets
    ]
    return ChartData(labels=data.labels[::stride], datasets=datasets)
