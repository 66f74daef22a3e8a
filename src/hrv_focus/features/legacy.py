from typing import Optional, Sequence

import numpy as np

from ..signal.artifacts import filter_intervals
from .vector import FeatureVector

SCHEMA = ("MEDIAN_RR", "HR", "MEAN_RR", "SDRR_RMSSD", "pNN25", "higuci")

MIN_VALID_HR = 30.0
MAX_VALID_HR = 300.0
PNN25_THRESHOLD = 25.0


def pnn25(rr: np.ndarray) -> float:
    if rr.size < 2:
        return 0.0
    diffs = np.abs(np.diff(rr))
    return float(np.count_nonzero(diffs > PNN25_THRESHOLD)) / diffs.size * 100.0


def higuchi_fd(rr: Sequence[float], k_max: int = 10) -> float:
    """Higuchi fractal dimension: |slope| of log L(k) against log(1/k)."""
    x = np.asarray(rr, dtype=float)
    n = x.size
    if n < k_max:
        return 0.0

    curve_lengths = []
    for k in range(1, k_max + 1):
        total = 0.0
        for m in range(1, k + 1):
            idx = m + k * np.arange((n - m) // k)
            idx = idx[(idx < n) & (idx - k >= 0)]
            if idx.size == 0:
                continue
            length = float(np.sum(np.abs(x[idx] - x[idx - k])))
            total += length * (n - 1) / (idx.size * k * k)
        curve_lengths.append(total / k)

    log_inv_k = np.log(1.0 / np.arange(1, k_max + 1))
    log_l = np.log([v if v > 0 else 0.001 for v in curve_lengths])

    denom = k_max * np.sum(log_inv_k ** 2) - np.sum(log_inv_k) ** 2
    if abs(denom) < 1e-10:
        return 0.0
    slope = (k_max * np.sum(log_inv_k * log_l) - np.sum(log_inv_k) * np.sum(log_l)) / denom
    return float(abs(slope))


def extract_legacy_features(intervals_ms: Sequence[float], hr_mean: float) -> Optional[FeatureVector]:
    """Compact 6-feature vector for the secondary classifier.

    Returns None when HR is implausible, no intervals survive cleaning, or a
    feature is not finite.
    """
    if not (MIN_VALID_HR <= hr_mean <= MAX_VALID_HR):
        return None
    cleaned = np.asarray(filter_intervals(intervals_ms), dtype=float)
    if cleaned.size == 0:
        return None

    if cleaned.size >= 2 and np.ptp(cleaned) > 0:
        sdnn = float(cleaned.std(ddof=1))
    else:
        sdnn = 0.0

    values = [
        float(np.median(cleaned)),
        float(hr_mean),
        float(cleaned.mean()),
        sdnn,
        pnn25(cleaned),
        higuchi_fd(cleaned),
    ]
    if not all(np.isfinite(values)):
        return None
    return FeatureVector.from_values(SCHEMA, values)


class LegacyFeatureExtractor:
    schema = SCHEMA

    def extract(self, intervals_ms: Sequence[float], hr_mean: float) -> Optional[FeatureVector]:
        return extract_legacy_features(intervals_ms, hr_mean)
