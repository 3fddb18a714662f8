"""Per-frame pitch estimation and window aggregation."""

from .pitch_estimator import PitchEstimator, estimate_pitch, rms_volume
from .stability_analyzer import (
    AggregationMode,
    AggregatorSettings,
    PitchSampleAggregator,
    classify_feedback,
)

__all__ = [
    "PitchEstimator",
    "estimate_pitch",
    "rms_volume",
    "AggregationMode",
    "AggregatorSettings",
    "PitchSampleAggregator",
    "classify_feedback",
]
