"""Artifact rejection and signal-quality scoring for beat-interval windows.

All functions are pure and never raise on physiological input: an empty
result means "no inference this cycle".
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
import math

import numpy as np

DEFAULT_MOTION_THRESHOLD = 2.0  # g
MIN_RR_MS = 300.0
MAX_RR_MS = 2000.0
MAX_JUMP_MS = 250.0
MIN_HR_BPM = 30.0
MAX_HR_BPM = 220.0


def heart_rate_to_interval(hr_bpm: float) -> float:
    return 60000.0 / hr_bpm


def interval_to_heart_rate(rr_ms: float) -> float:
    return 60000.0 / rr_ms


def filter_heart_rate(hr_bpm: float, low: float = MIN_HR_BPM, high: float = MAX_HR_BPM) -> Optional[float]:
    if hr_bpm is None or not math.isfinite(hr_bpm):
        return None
    if hr_bpm < low or hr_bpm > high:
        return None
    return float(hr_bpm)


def motion_magnitude(x: float, y: float, z: float) -> float:
    return math.sqrt(x * x + y * y + z * z)


def is_motion_artifact(motion: float, threshold: float = DEFAULT_MOTION_THRESHOLD) -> bool:
    return motion > threshold


def filter_intervals(
    intervals_ms: Sequence[float],
    motion: float = 0.0,
    motion_threshold: float = DEFAULT_MOTION_THRESHOLD,
) -> List[float]:
    """Drop implausible intervals; discard the whole window under heavy motion.

    An interval is kept when it lies in [300, 2000] ms and differs from the
    previously kept interval by at most 250 ms.
    """
    if is_motion_artifact(motion, motion_threshold):
        return []

    kept: List[float] = []
    for rr in intervals_ms:
        rr = float(rr)
        if not (MIN_RR_MS <= rr <= MAX_RR_MS):
            continue
        if kept and abs(rr - kept[-1]) > MAX_JUMP_MS:
            continue
        kept.append(rr)
    return kept


def quality_score(
    intervals_ms: Sequence[float],
    motion: float = 0.0,
    motion_threshold: float = DEFAULT_MOTION_THRESHOLD,
) -> float:
    """Diagnostic 0..1 quality score (motion, plausibility, consistency)."""
    if len(intervals_ms) == 0:
        return 0.0
    rr = np.asarray(intervals_ms, dtype=float)

    if motion_threshold > 0:
        motion_term = float(np.clip(1.0 - motion / motion_threshold, 0.0, 1.0))
    else:
        motion_term = 0.0

    valid = (rr >= MIN_RR_MS) & (rr <= MAX_RR_MS)
    plausibility = float(valid.mean())

    consistency = 1.0
    if rr.size > 1:
        diffs = np.abs(np.diff(rr))
        consistency = 1.0 / (1.0 + float(diffs.std()) / 100.0)

    score = 0.4 * motion_term + 0.4 * plausibility + 0.2 * consistency
    return float(min(1.0, max(0.0, score)))


def _median(values: np.ndarray) -> float:
    return float(np.median(values))


def detect_outliers(values: Sequence[float], threshold: float = 3.5) -> List[bool]:
    """Modified z-score outlier flags (0.6745 * (x - median) / MAD)."""
    arr = np.asarray(values, dtype=float)
    if arr.size < 3:
        return [False] * int(arr.size)
    median = _median(arr)
    mad = _median(np.abs(arr - median))
    if mad == 0:
        return [False] * int(arr.size)
    scores = 0.6745 * (arr - median) / mad
    return [bool(s) for s in np.abs(scores) > threshold]


def remove_outliers(values: Sequence[float], threshold: float = 3.5) -> List[float]:
    flags = detect_outliers(values, threshold=threshold)
    return [float(v) for v, bad in zip(values, flags) if not bad]


def median_filter(values: Sequence[float], window_size: int = 3) -> List[float]:
    arr = np.asarray(values, dtype=float)
    if arr.size < window_size:
        return [float(v) for v in arr]
    half = window_size // 2
    out = []
    for i in range(arr.size):
        lo = max(0, i - half)
        hi = min(arr.size, i + half + 1)
        out.append(_median(arr[lo:hi]))
    return out


@dataclass(frozen=True)
class ArtifactFlags:
    has_motion_artifact: bool
    has_hr_artifact: bool
    has_rr_artifact: bool
    quality_score: float

    @property
    def has_any_artifact(self) -> bool:
        return self.has_motion_artifact or self.has_hr_artifact or self.has_rr_artifact

    @property
    def is_high_quality(self) -> bool:
        return not self.has_any_artifact and self.quality_score > 0.7

    @property
    def is_medium_quality(self) -> bool:
        return not self.has_any_artifact and self.quality_score > 0.4

    @property
    def is_low_quality(self) -> bool:
        return self.has_any_artifact or self.quality_score <= 0.4


def detect_artifacts(
    hr_bpm: Optional[float] = None,
    intervals_ms: Optional[Sequence[float]] = None,
    motion: Optional[float] = None,
    motion_threshold: float = DEFAULT_MOTION_THRESHOLD,
) -> ArtifactFlags:
    has_motion = motion is not None and is_motion_artifact(motion, motion_threshold)
    has_hr = hr_bpm is not None and filter_heart_rate(hr_bpm) is None
    has_rr = False
    quality = 1.0
    if intervals_ms:
        has_rr = any(rr < MIN_RR_MS or rr > MAX_RR_MS for rr in intervals_ms)
        quality = quality_score(intervals_ms, motion or 0.0, motion_threshold)
    return ArtifactFlags(
        has_motion_artifact=has_motion,
        has_hr_artifact=has_hr,
        has_rr_artifact=has_rr,
        quality_score=quality,
    )
