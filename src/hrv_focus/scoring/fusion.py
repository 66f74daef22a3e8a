"""Mapping of classifier output (or biosignal/behavior sub-scores) to a focus score.

Two strategies share the ``ScoreFusion`` interface:

- ``ProbabilityBandFusion``: arg-max label, score interpolated inside the
  label's band, exponential smoothing with weight ``lambda`` on the new score.
- ``DualModalityFusion``: weighted biosignal and behavior scores, its own
  smoothing factor, High/Medium/Low level by two cut points.

Each instance keeps exactly one previous score, so independent engines never
share smoothing memory.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..config import MultimodalConfig
from ..utils.time_utils import iso_utc
from .labels import SCORE_BANDS, ClassProbabilities, FocusLabel


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ExponentialSmoother:
    """score = weight * new + (1 - weight) * previous, from the second value on."""

    def __init__(self, weight_new: float = 0.9, enabled: bool = True):
        self.weight_new = float(weight_new)
        self.enabled = enabled
        self.previous: Optional[float] = None

    def preview(self, value: float) -> float:
        if not self.enabled or self.previous is None:
            return value
        return self.weight_new * value + (1.0 - self.weight_new) * self.previous

    def update(self, value: float) -> float:
        smoothed = self.preview(value)
        self.previous = smoothed
        return smoothed

    def reset(self) -> None:
        self.previous = None


@dataclass(frozen=True)
class FusedScore:
    raw_score: float  # 0..100 before smoothing
    score: float  # 0..100 after smoothing
    label: str
    confidence: float
    components: Dict[str, float] = field(default_factory=dict)


class ScoreFusion:
    def fuse(self, signal, commit: bool = True) -> FusedScore:  # pragma: no cover - interface
        raise NotImplementedError

    def reset(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError


def band_score(label: FocusLabel, confidence: float) -> float:
    low, high = SCORE_BANDS.get(label, SCORE_BANDS[FocusLabel.DISTRACTED])
    return _clamp(low + confidence * (high - low), 0.0, 100.0)


class ProbabilityBandFusion(ScoreFusion):
    def __init__(self, smoothing_lambda: float = 0.9, enable_smoothing: bool = True):
        self.smoother = ExponentialSmoother(weight_new=smoothing_lambda, enabled=enable_smoothing)

    def fuse(self, signal: ClassProbabilities, commit: bool = True) -> FusedScore:
        label, confidence = signal.argmax()
        raw = band_score(label, confidence)
        score = self.smoother.update(raw) if commit else self.smoother.preview(raw)
        return FusedScore(
            raw_score=raw,
            score=_clamp(score, 0.0, 100.0),
            label=label.value,
            confidence=confidence,
            components=signal.as_dict(),
        )

    def reset(self) -> None:
        self.smoother.reset()


class FocusLevel(str, Enum):
    HIGH = "High Focus"
    MEDIUM = "Medium Focus"
    LOW = "Low Focus"


@dataclass(frozen=True)
class BiosignalSnapshot:
    hr: float  # bpm
    hrv_rmssd: float  # ms
    stress_index: float  # 0..1
    motion_intensity: float  # 0..1

    def to_dict(self) -> dict:
        return {
            "hr": self.hr,
            "hrv_rmssd": self.hrv_rmssd,
            "stress_index": self.stress_index,
            "motion_intensity": self.motion_intensity,
        }


@dataclass(frozen=True)
class BehaviorSnapshot:
    task_switch_rate: float  # switches per minute
    interaction_burstiness: float  # 0..1
    idle_ratio: float  # 0..1

    def to_dict(self) -> dict:
        return {
            "task_switch_rate": self.task_switch_rate,
            "interaction_burstiness": self.interaction_burstiness,
            "idle_ratio": self.idle_ratio,
        }


@dataclass(frozen=True)
class MultimodalInput:
    biosignal: BiosignalSnapshot
    behavior: BehaviorSnapshot


def heart_rate_focus(hr: float) -> float:
    """1.0 near the middle of 60-80 bpm, lower for drowsy or aroused rates."""
    optimal_min, optimal_max = 60.0, 80.0
    optimal_mid = (optimal_min + optimal_max) / 2.0
    if optimal_min <= hr <= optimal_max:
        distance = abs(hr - optimal_mid)
        return 1.0 - (distance / (optimal_max - optimal_mid)) * 0.2
    if hr < optimal_min:
        return _clamp(hr / optimal_min, 0.5, 1.0)
    return max(0.3, 1.0 - (hr - optimal_max) / 40.0)


def biosignal_score(data: BiosignalSnapshot) -> float:
    hr_term = heart_rate_focus(data.hr)
    hrv_term = _clamp((data.hrv_rmssd - 20.0) / 40.0, 0.0, 1.0)
    stress_term = 1.0 - data.stress_index
    motion_term = 1.0 - data.motion_intensity
    return _clamp(hr_term * 0.25 + hrv_term * 0.25 + stress_term * 0.3 + motion_term * 0.2, 0.0, 1.0)


def behavior_score(data: BehaviorSnapshot) -> float:
    switch_term = max(0.0, 1.0 - data.task_switch_rate / 2.0)
    burst_term = _clamp(1.0 - abs(data.interaction_burstiness - 0.3) * 2.0, 0.0, 1.0)
    engagement_term = 1.0 - data.idle_ratio
    return _clamp(switch_term * 0.4 + burst_term * 0.3 + engagement_term * 0.3, 0.0, 1.0)


def multimodal_confidence(data: BiosignalSnapshot) -> float:
    confidence = 0.7
    if 40.0 <= data.hr <= 200.0:
        confidence += 0.1
    if 5.0 <= data.hrv_rmssd <= 200.0:
        confidence += 0.1
    if data.stress_index > 0.9 or data.motion_intensity > 0.9:
        confidence -= 0.1
    return _clamp(confidence, 0.0, 1.0)


class DualModalityFusion(ScoreFusion):
    def __init__(self, config: MultimodalConfig | None = None):
        self.config = config or MultimodalConfig()
        self.smoother = ExponentialSmoother(weight_new=1.0 - self.config.smoothing_factor)

    def level(self, score01: float) -> FocusLevel:
        if score01 >= self.config.high_focus_threshold:
            return FocusLevel.HIGH
        if score01 >= self.config.medium_focus_threshold:
            return FocusLevel.MEDIUM
        return FocusLevel.LOW

    def fuse(self, signal: MultimodalInput, commit: bool = True) -> FusedScore:
        bio = biosignal_score(signal.biosignal)
        beh = behavior_score(signal.behavior)
        raw01 = bio * self.config.biosignal_weight + beh * self.config.behavior_weight
        smoothed01 = self.smoother.update(raw01) if commit else self.smoother.preview(raw01)
        smoothed01 = _clamp(smoothed01, 0.0, 1.0)
        return FusedScore(
            raw_score=raw01 * 100.0,
            score=smoothed01 * 100.0,
            label=self.level(smoothed01).value,
            confidence=multimodal_confidence(signal.biosignal),
            components={"biosignal_score": bio, "behavior_score": beh, "raw_score": raw01},
        )

    def reset(self) -> None:
        self.smoother.reset()


def interpret_score(score: float) -> str:
    if score >= 80.0:
        return "Highly Focused"
    if score >= 60.0:
        return "Focused"
    if score >= 40.0:
        return "Moderately Focused"
    if score >= 20.0:
        return "Distracted"
    return "Very Distracted"


@dataclass(frozen=True)
class FocusResult:
    timestamp: float
    dominant_label: FocusLabel
    focus_score: float  # 0..100, smoothed
    raw_score: float  # 0..100, before smoothing
    confidence: float  # probability of the dominant label
    probabilities: Dict[str, float]
    features: Dict[str, float]
    model_metadata: Dict[str, Any]
    quality_score: float = 1.0
    baseline: Dict[str, float] = field(default_factory=dict)

    @property
    def interpretation(self) -> str:
        return interpret_score(self.focus_score)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "time": iso_utc(self.timestamp),
            "dominant_label": self.dominant_label.value,
            "focus_score": self.focus_score,
            "raw_score": self.raw_score,
            "confidence": self.confidence,
            "probabilities": dict(self.probabilities),
            "features": dict(self.features),
            "model": dict(self.model_metadata),
            "quality_score": self.quality_score,
            "baseline": dict(self.baseline),
        }


@dataclass(frozen=True)
class FocusState:
    """Result of the multimodal path; score on a 0..1 scale."""

    focus_score: float
    level: FocusLevel
    confidence: float
    timestamp: float
    metadata: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "focus_score": self.focus_score,
            "level": self.level.value,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }
