"""24-feature HRV extraction from a beat-interval sequence.

Features, in schema order:

- time domain (9): mean_rr, std_rr, min_rr, max_rr, range_rr, rmssd, sdnn,
  nn50, pnn50
- frequency domain (11): vlf/lf/hf/uhf power, total_power, lf_hf_ratio, the
  four band powers as a percentage of total, normalized_lf = LF/(LF+HF) %
- statistical (4): skewness, kurtosis_val (excess), median_rr, iqr

Intervals are in milliseconds. The sequence may already be z-scored, in which
case the raw intervals can be passed as ``timeline_ms`` so the resampling
time axis stays physical.
"""

from typing import List, Optional, Sequence

import numpy as np

from ..errors import InsufficientDataError
from .vector import FeatureVector

FS_HZ = 4.0
MAX_SEGMENT = 256
NN50_THRESHOLD = 50.0

FREQ_BANDS = (
    ("vlf", 0.003, 0.04),
    ("lf", 0.04, 0.15),
    ("hf", 0.15, 0.40),
    ("uhf", 0.40, 1.00),
)

TIME_FEATURES = (
    "mean_rr",
    "std_rr",
    "min_rr",
    "max_rr",
    "range_rr",
    "rmssd",
    "sdnn",
    "nn50",
    "pnn50",
)
FREQ_FEATURES = (
    "vlf_power",
    "lf_power",
    "hf_power",
    "uhf_power",
    "total_power",
    "lf_hf_ratio",
    "vlf_norm",
    "lf_norm",
    "hf_norm",
    "uhf_norm",
    "normalized_lf",
)
STAT_FEATURES = ("skewness", "kurtosis_val", "median_rr", "iqr")

SCHEMA = TIME_FEATURES + FREQ_FEATURES + STAT_FEATURES


def _sample_std(rr: np.ndarray) -> float:
    # constant input must give exactly 0, not summation round-off
    if rr.size < 2 or np.ptp(rr) == 0:
        return 0.0
    return float(rr.std(ddof=1))


def time_domain_features(rr: np.ndarray) -> List[float]:
    mean_rr = float(rr.mean())
    std_rr = _sample_std(rr)
    min_rr = float(rr.min())
    max_rr = float(rr.max())

    diffs = np.diff(rr)
    if diffs.size == 0:
        rmssd, nn50, pnn50 = 0.0, 0.0, 0.0
    else:
        rmssd = float(np.sqrt(np.mean(diffs ** 2)))
        nn50 = float(np.count_nonzero(np.abs(diffs) > NN50_THRESHOLD))
        pnn50 = nn50 / diffs.size * 100.0

    return [mean_rr, std_rr, min_rr, max_rr, max_rr - min_rr, rmssd, std_rr, nn50, pnn50]


def resample_uniform(rr: np.ndarray, timeline_ms: np.ndarray, fs: float = FS_HZ) -> np.ndarray:
    """Linearly interpolate ``rr`` onto a uniform ``fs`` grid over [0, t_last).

    The time axis is t[0] = 0, t[i] = t[i-1] + timeline[i-1] (seconds).
    Returns an empty array when the axis has no positive extent.
    """
    if rr.size < 2:
        return np.zeros(0)
    t = np.concatenate(([0.0], np.cumsum(timeline_ms[:-1] / 1000.0)))
    if t[-1] <= 0:
        return np.zeros(0)
    grid = np.arange(0.0, t[-1], 1.0 / fs)
    if grid.size == 0:
        return np.zeros(0)
    return np.interp(grid, t, rr)


def single_segment_psd(x: np.ndarray, fs: float = FS_HZ, max_segment: int = MAX_SEGMENT):
    """Welch estimate with one symmetric-Hann segment of min(max_segment, n) points.

    PSD = |DFT|^2 / n / fs on the non-negative frequencies k * fs / n.
    """
    n = min(max_segment, x.size)
    if n < 4:
        return np.zeros(1), np.zeros(1)
    segment = x[:n] * np.hanning(n)
    spectrum = np.fft.rfft(segment)
    psd = (spectrum.real ** 2 + spectrum.imag ** 2) / n / fs
    freqs = np.arange(psd.size) * fs / n
    return freqs, psd


def band_power(freqs: np.ndarray, psd: np.ndarray, lo: float, hi: float) -> float:
    """Trapezoidal power of the segments ending on a bin inside [lo, hi)."""
    if freqs.size < 2:
        return 0.0
    ends = np.arange(1, freqs.size)
    in_band = (freqs[ends] >= lo) & (freqs[ends] < hi)
    ends = ends[in_band]
    if ends.size == 0:
        return 0.0
    df = freqs[ends] - freqs[ends - 1]
    return float(np.sum((psd[ends] + psd[ends - 1]) * df / 2.0))


def frequency_domain_features(rr: np.ndarray, timeline_ms: np.ndarray) -> List[float]:
    resampled = resample_uniform(rr, timeline_ms)
    if resampled.size == 0:
        return [0.0] * len(FREQ_FEATURES)

    if np.ptp(resampled) == 0:
        return [0.0] * len(FREQ_FEATURES)
    detrended = resampled - resampled.mean()
    freqs, psd = single_segment_psd(detrended)
    vlf, lf, hf, uhf = (band_power(freqs, psd, lo, hi) for _, lo, hi in FREQ_BANDS)

    total = vlf + lf + hf + uhf
    lf_hf = lf / hf if hf > 0 else 0.0
    if total > 0:
        norms = [vlf / total * 100.0, lf / total * 100.0, hf / total * 100.0, uhf / total * 100.0]
    else:
        norms = [0.0, 0.0, 0.0, 0.0]
    normalized_lf = lf / (lf + hf) * 100.0 if (lf + hf) > 0 else 0.0

    return [vlf, lf, hf, uhf, total, lf_hf] + norms + [normalized_lf]


def statistical_features(rr: np.ndarray) -> List[float]:
    std = _sample_std(rr)
    if std > 0:
        z = (rr - rr.mean()) / std
        skewness = float(np.mean(z ** 3))
        kurtosis = float(np.mean(z ** 4)) - 3.0
    else:
        skewness, kurtosis = 0.0, 0.0

    ordered = np.sort(rr)
    n = ordered.size
    median = float(np.median(ordered))
    # truncated-index quartiles, no interpolation
    iqr = float(ordered[(3 * n) // 4] - ordered[n // 4])
    return [skewness, kurtosis, median, iqr]


def extract_hrv_features(
    intervals_ms: Sequence[float],
    timeline_ms: Optional[Sequence[float]] = None,
) -> FeatureVector:
    """Compute the 24 HRV features; degenerate parts degrade to zeros.

    Raises InsufficientDataError only for an empty interval list.
    """
    rr = np.asarray(intervals_ms, dtype=float)
    if rr.size == 0:
        raise InsufficientDataError("Empty interval sequence")

    if timeline_ms is None:
        timeline = rr
    else:
        timeline = np.asarray(timeline_ms, dtype=float)
        if timeline.size != rr.size:
            raise ValueError("timeline_ms must have the same length as intervals_ms")

    values = time_domain_features(rr) + frequency_domain_features(rr, timeline) + statistical_features(rr)
    values = [v if np.isfinite(v) else 0.0 for v in values]
    return FeatureVector.from_values(SCHEMA, values)


class HRVFeatureExtractor24:
    schema = SCHEMA

    def extract(self, intervals_ms: Sequence[float], timeline_ms: Optional[Sequence[float]] = None) -> FeatureVector:
        return extract_hrv_features(intervals_ms, timeline_ms=timeline_ms)
