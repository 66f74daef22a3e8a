"""Streaming focus engine: heart-rate samples in, smoothed focus results out.

The engine owns the sliding window, the subject normalizer, the adaptive
baseline and the smoothing memory. ``ingest`` is synchronous; the only
external call is the classifier, and at most one such call is in flight.
State is committed only after a successful inference, so a cycle that fails
in the classifier is retried on the next sample.
"""

import logging
import math
import time
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from .config import FocusConfig, MultimodalConfig
from .errors import ClassifierError, InsufficientDataError, InvalidInputError
from .features.hrv24 import SCHEMA as HRV24_SCHEMA, extract_hrv_features
from .features.legacy import SCHEMA as LEGACY_SCHEMA, extract_legacy_features
from .features.vector import FeatureVector
from .models.descriptor import Classifier, ModelDescriptor
from .profiling.baseline import AdaptiveBaseline, SubjectIntervalNormalizer
from .scoring.fusion import (
    BehaviorSnapshot,
    BiosignalSnapshot,
    DualModalityFusion,
    FocusLevel,
    FocusResult,
    FocusState,
    MultimodalInput,
    ProbabilityBandFusion,
)
from .scoring.labels import ClassProbabilities, FocusLabel
from .signal.artifacts import filter_heart_rate, filter_intervals, heart_rate_to_interval, quality_score
from .signal.window import Sample, TimeSeriesWindow
from .utils.time_utils import to_epoch_seconds

logger = logging.getLogger(__name__)

ResultCallback = Callable[[FocusResult], None]


class EngineState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    READY = "ready"


class FocusEngine:
    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        config: Optional[FocusConfig] = None,
        descriptor: Optional[ModelDescriptor] = None,
        baseline: Optional[AdaptiveBaseline] = None,
        multimodal_config: Optional[MultimodalConfig] = None,
    ):
        self.config = config or FocusConfig()
        self.classifier = classifier
        if descriptor is None and classifier is not None:
            descriptor = classifier.descriptor
        self.descriptor = descriptor
        self.feature_set = self._feature_set_for(descriptor)

        self.window = TimeSeriesWindow(self.config.window_seconds, self.config.hop_seconds)
        self.baseline = baseline or AdaptiveBaseline(
            update_interval_seconds=self.config.baseline_update_interval_seconds,
            min_samples=self.config.baseline_min_samples,
        )
        self.normalizer = SubjectIntervalNormalizer(self.config.subject_history_limit)
        self.fusion = ProbabilityBandFusion(
            smoothing_lambda=self.config.smoothing_lambda,
            enable_smoothing=self.config.enable_smoothing,
        )
        self.multimodal = DualModalityFusion(multimodal_config)

        self.last_result: Optional[FocusResult] = None
        self._subscribers: List[ResultCallback] = []
        self._in_flight = False
        self._disposed = False

    @staticmethod
    def _feature_set_for(descriptor: Optional[ModelDescriptor]) -> str:
        if descriptor is None or descriptor.num_features == len(HRV24_SCHEMA):
            return "hrv24"
        if descriptor.num_features == len(LEGACY_SCHEMA):
            return "legacy6"
        raise InvalidInputError(
            f"Model {descriptor.model_id} expects {descriptor.num_features} features; "
            f"supported sizes are {len(HRV24_SCHEMA)} and {len(LEGACY_SCHEMA)}"
        )

    # ------------------------
    # Public
    # ------------------------

    @property
    def state(self) -> EngineState:
        if len(self.window) == 0 and self.window.first_timestamp is None:
            return EngineState.IDLE
        if self.window.has_emitted:
            return EngineState.READY
        first = self.window.first_timestamp
        latest = self.window.latest_timestamp
        if latest - first >= self.config.window_seconds:
            return EngineState.READY
        return EngineState.COLLECTING

    def subscribe(self, callback: ResultCallback) -> Callable[[], None]:
        """Register a callback for every result; returns an unsubscribe function."""
        self._ensure_open()
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def ingest(self, heart_rate_bpm: float, timestamp, motion_magnitude: float = 0.0) -> Optional[FocusResult]:
        """Feed one heart-rate sample; returns a result when an inference fired.

        Returns None while collecting, between hops, for rejected samples and
        when too few intervals survive artifact filtering. Raises
        ClassifierError when the classifier fails.
        """
        self._ensure_open()
        if self._in_flight:
            raise RuntimeError("ingest called while a classifier call is in flight")
        if self.classifier is None:
            raise RuntimeError("No classifier configured for heart-rate inference")

        sample = self._make_sample(heart_rate_bpm, timestamp, motion_magnitude)
        if sample is None:
            return None

        snapshot = self.window.push(sample.timestamp, sample, commit=False)
        if snapshot is None:
            logger.debug(
                "Collecting: %d samples, state %s",
                len(self.window),
                self.state.value,
            )
            return None
        return self._run_cycle(snapshot, sample.timestamp)

    def infer_multimodal(
        self,
        biosignal: BiosignalSnapshot,
        behavior: BehaviorSnapshot,
        timestamp=None,
    ) -> FocusState:
        """Weighted biosignal + behavior scoring; independent of the HR window."""
        self._ensure_open()
        ts = time.time() if timestamp is None else to_epoch_seconds(timestamp)
        fused = self.multimodal.fuse(MultimodalInput(biosignal=biosignal, behavior=behavior))
        state = FocusState(
            focus_score=fused.score / 100.0,
            level=FocusLevel(fused.label),
            confidence=fused.confidence,
            timestamp=ts,
            metadata=dict(fused.components),
        )
        logger.debug("Multimodal focus %.3f (%s)", state.focus_score, state.level.value)
        return state

    def reset(self) -> None:
        self.window.clear()
        self.normalizer.clear()
        self.baseline.clear_samples()
        self.fusion.reset()
        self.multimodal.reset()
        self.last_result = None
        logger.info("Engine reset")

    def dispose(self) -> None:
        """Release the classifier and drop subscribers; a pending result is discarded."""
        if self._disposed:
            return
        self._disposed = True
        self._subscribers.clear()
        close = getattr(self.classifier, "close", None)
        if callable(close):
            close()

    def get_state(self) -> dict:
        return {
            "state": self.state.value,
            "config": self.config.to_dict(),
            "previous_score": self.fusion.smoother.previous,
            "last_result_timestamp": self.last_result.timestamp if self.last_result else None,
            "buffered_samples": len(self.window),
            "model": self.descriptor.metadata() if self.descriptor else None,
            "feature_set": self.feature_set,
            "baseline": self.baseline.snapshot(),
        }

    # ------------------------
    # Internals
    # ------------------------

    def _ensure_open(self) -> None:
        if self._disposed:
            raise RuntimeError("FocusEngine has been disposed")

    def _make_sample(self, heart_rate_bpm, timestamp, motion_magnitude) -> Optional[Sample]:
        try:
            ts = to_epoch_seconds(timestamp)
            hr = float(heart_rate_bpm)
            motion = float(motion_magnitude)
        except (TypeError, ValueError) as e:
            logger.warning("Dropping malformed sample (%s)", e)
            return None

        if filter_heart_rate(hr, self.config.hr_min_bpm, self.config.hr_max_bpm) is None:
            logger.warning("Dropping out-of-range heart rate %.1f bpm at %.3f", hr, ts)
            return None
        if not math.isfinite(motion) or motion < 0:
            logger.warning("Dropping sample with invalid motion magnitude %r", motion_magnitude)
            return None
        return Sample(timestamp=ts, heart_rate_bpm=hr, motion_magnitude=motion)

    def _extract(self, cleaned: List[float], hr_mean: float) -> Optional[FeatureVector]:
        if self.feature_set == "legacy6":
            return extract_legacy_features(cleaned, hr_mean)
        if not self.config.normalize_intervals:
            return extract_hrv_features(cleaned)
        values = self.normalizer.transform(cleaned, commit=False)
        # default: the time axis is accumulated from the extractor input itself
        timeline = cleaned if self.config.physical_time_axis else None
        return extract_hrv_features(values, timeline_ms=timeline)

    def _predict(self, features: FeatureVector):
        self._in_flight = True
        try:
            return self.classifier.predict(features.as_array().tolist())
        except Exception as e:
            raise ClassifierError(f"Classifier {self.descriptor.model_id} failed: {e}") from e
        finally:
            self._in_flight = False

    def _run_cycle(self, snapshot, ts: float) -> Optional[FocusResult]:
        intervals = [heart_rate_to_interval(s.heart_rate_bpm) for s in snapshot]
        peak_motion = max(s.motion_magnitude for s in snapshot)
        cleaned = filter_intervals(intervals, peak_motion, self.config.motion_threshold)
        quality = quality_score(intervals, peak_motion, self.config.motion_threshold)

        if len(cleaned) < self.config.min_valid_samples:
            logger.info(
                "Insufficient data: %d valid intervals < %d (motion %.2f, quality %.2f)",
                len(cleaned),
                self.config.min_valid_samples,
                peak_motion,
                quality,
            )
            return None

        cleaned_arr = np.asarray(cleaned, dtype=float)
        hr_mean = float(np.mean(60000.0 / cleaned_arr))
        sdnn = float(cleaned_arr.std(ddof=1)) if cleaned_arr.size > 1 and np.ptp(cleaned_arr) > 0 else 0.0

        try:
            features = self._extract(cleaned, hr_mean)
        except InsufficientDataError as e:
            logger.info("Feature extraction skipped: %s", e)
            return None
        if features is None:
            logger.info("Feature extraction produced no vector")
            return None

        self.descriptor.validate_vector(features.values)
        raw_probabilities = self._predict(features)
        if self._disposed:
            logger.info("Engine disposed during inference, discarding result")
            return None

        try:
            probabilities = ClassProbabilities.from_mapping(raw_probabilities, self.descriptor.labels)
        except (TypeError, ValueError, AttributeError) as e:
            raise ClassifierError(f"Classifier returned unusable probabilities: {e}") from e

        # Success: commit cadence, subject history, baseline and smoothing memory.
        fused = self.fusion.fuse(probabilities)
        self.window.mark_emitted()
        if self.feature_set == "hrv24" and self.config.normalize_intervals:
            self.normalizer.commit(cleaned)
        self.baseline.add_sample(hr_mean, sdnn, ts)

        result = FocusResult(
            timestamp=ts,
            dominant_label=FocusLabel(fused.label),
            focus_score=fused.score,
            raw_score=fused.raw_score,
            confidence=fused.confidence,
            probabilities=probabilities.as_dict(),
            features=features.as_dict(),
            model_metadata=self.descriptor.metadata(),
            quality_score=quality,
            baseline={
                "hr_mean": hr_mean,
                "hrv_sdnn": sdnn,
                "hr_z": self.baseline.normalize_hr(hr_mean),
                "hrv_z": self.baseline.normalize_hrv(sdnn),
                "confidence": self.baseline.confidence(ts),
            },
        )
        self.last_result = result
        logger.info(
            "Focus %.1f (%s, confidence %.1f%%) from %d intervals",
            result.focus_score,
            result.dominant_label.value,
            result.confidence * 100.0,
            len(cleaned),
        )
        self._publish(result)
        return result

    def _publish(self, result: FocusResult) -> None:
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception:
                logger.exception("Result subscriber %r failed", callback)
