"""Per-subject baselines used to normalize physiological signals.

``AdaptiveBaseline`` tracks HR and HRV (SDNN) statistics, starting from
population values and recalibrating once enough samples have been buffered
and the update interval has passed. Time is taken from sample timestamps so
the behaviour is reproducible when replaying recorded sessions.

``SubjectIntervalNormalizer`` z-scores beat-interval windows against the
subject's rolling interval history.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

POPULATION_HR_MEAN = 72.0
POPULATION_HR_STD = 12.0
POPULATION_HRV_MEAN = 45.0
POPULATION_HRV_STD = 18.0


class BaselineState(str, Enum):
    POPULATION = "population"
    PERSONALIZING = "personalizing"
    PERSONALIZED = "personalized"


@dataclass(frozen=True)
class BaselineStats:
    mean: float
    std: float
    sample_count: int
    last_update: Optional[float]


def _sample_std(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    if arr.size < 2 or np.ptp(arr) == 0:
        return 0.0
    return float(np.std(arr, ddof=1))


def _normalize(value: float, mean: float, std: float) -> float:
    if std == 0:
        return 0.0
    return (value - mean) / std


class AdaptiveBaseline:
    def __init__(
        self,
        update_interval_seconds: float = 24 * 3600.0,
        min_samples: int = 100,
        hr_mean: float = POPULATION_HR_MEAN,
        hr_std: float = POPULATION_HR_STD,
        hrv_mean: float = POPULATION_HRV_MEAN,
        hrv_std: float = POPULATION_HRV_STD,
        last_update: Optional[float] = None,
        state: BaselineState = BaselineState.POPULATION,
    ):
        self.update_interval_seconds = float(update_interval_seconds)
        self.min_samples = int(min_samples)
        self.hr_mean = float(hr_mean)
        self.hr_std = float(hr_std)
        self.hrv_mean = float(hrv_mean)
        self.hrv_std = float(hrv_std)
        self.last_update = last_update
        self.state = state
        self._hr_samples: List[float] = []
        self._hrv_samples: List[float] = []
        self._latest_ts: Optional[float] = last_update

    @property
    def sample_count(self) -> int:
        return len(self._hr_samples)

    @property
    def is_personalized(self) -> bool:
        return self.state is BaselineState.PERSONALIZED

    def add_sample(self, hr_bpm: float, hrv_sdnn: float, timestamp: float) -> bool:
        """Buffer one HR/HRV pair; returns True if the baseline was recalibrated."""
        ts = float(timestamp)
        self._hr_samples.append(float(hr_bpm))
        self._hrv_samples.append(float(hrv_sdnn))
        if self._latest_ts is None or ts > self._latest_ts:
            self._latest_ts = ts
        if self.last_update is None:
            self.last_update = ts
        if self.state is BaselineState.POPULATION:
            self.state = BaselineState.PERSONALIZING

        if self._should_update(ts):
            self._update(ts)
            return True
        return False

    def _should_update(self, now_ts: float) -> bool:
        if self.sample_count < self.min_samples:
            return False
        return now_ts - self.last_update >= self.update_interval_seconds

    def _update(self, now_ts: float) -> None:
        if self.sample_count < self.min_samples:
            return
        self.hr_mean = float(np.mean(self._hr_samples))
        self.hr_std = _sample_std(self._hr_samples)
        self.hrv_mean = float(np.mean(self._hrv_samples))
        self.hrv_std = _sample_std(self._hrv_samples)

        keep = self.min_samples // 2
        if self.sample_count > keep:
            del self._hr_samples[: self.sample_count - keep]
            del self._hrv_samples[: len(self._hrv_samples) - keep]

        self.last_update = now_ts
        self.state = BaselineState.PERSONALIZED
        logger.info(
            "Baseline recalibrated: hr %.1f+/-%.1f, hrv %.1f+/-%.1f",
            self.hr_mean,
            self.hr_std,
            self.hrv_mean,
            self.hrv_std,
        )

    def force_update(self, now_ts: Optional[float] = None) -> bool:
        """Recalibrate now, ignoring the update interval (sample count still applies)."""
        if not self._hr_samples or self.sample_count < self.min_samples:
            return False
        ts = self._latest_ts if now_ts is None else float(now_ts)
        self._update(ts)
        return True

    def reset_to_population(self, now_ts: Optional[float] = None) -> None:
        self.hr_mean = POPULATION_HR_MEAN
        self.hr_std = POPULATION_HR_STD
        self.hrv_mean = POPULATION_HRV_MEAN
        self.hrv_std = POPULATION_HRV_STD
        self.clear_samples()
        self.last_update = now_ts
        self._latest_ts = now_ts
        self.state = BaselineState.POPULATION

    def clear_samples(self) -> None:
        """Drop the buffered sample history but keep learned statistics."""
        self._hr_samples.clear()
        self._hrv_samples.clear()
        if self.state is BaselineState.PERSONALIZING:
            self.state = BaselineState.POPULATION

    def normalize_hr(self, hr_bpm: float) -> float:
        return _normalize(hr_bpm, self.hr_mean, self.hr_std)

    def normalize_hrv(self, hrv_sdnn: float) -> float:
        return _normalize(hrv_sdnn, self.hrv_mean, self.hrv_std)

    def denormalize_hr(self, z: float) -> float:
        return z * self.hr_std + self.hr_mean

    def denormalize_hrv(self, z: float) -> float:
        return z * self.hrv_std + self.hrv_mean

    def confidence(self, now_ts: Optional[float] = None) -> float:
        now = self._latest_ts if now_ts is None else float(now_ts)
        count_term = min(1.0, max(0.0, self.sample_count / (2.0 * self.min_samples)))
        if now is None or self.last_update is None:
            hours = 0.0
        else:
            hours = max(0.0, now - self.last_update) / 3600.0
        recency_term = min(1.0, max(0.0, 1.0 - hours / 48.0))
        return 0.7 * count_term + 0.3 * recency_term

    def hr_stats(self) -> BaselineStats:
        return BaselineStats(self.hr_mean, self.hr_std, self.sample_count, self.last_update)

    def hrv_stats(self) -> BaselineStats:
        return BaselineStats(self.hrv_mean, self.hrv_std, self.sample_count, self.last_update)

    def snapshot(self) -> Dict:
        return {
            "hr_mean": self.hr_mean,
            "hr_std": self.hr_std,
            "hrv_mean": self.hrv_mean,
            "hrv_std": self.hrv_std,
            "sample_count": self.sample_count,
            "last_update": self.last_update,
            "state": self.state.value,
            "confidence": self.confidence(),
        }

    def to_dict(self) -> Dict:
        payload = self.snapshot()
        payload.update(
            {
                "update_interval_seconds": self.update_interval_seconds,
                "min_samples": self.min_samples,
            }
        )
        return payload

    @staticmethod
    def from_dict(payload: Dict) -> "AdaptiveBaseline":
        last_update = payload.get("last_update")
        state = BaselineState(payload.get("state", BaselineState.POPULATION.value))
        # the sample buffer is not persisted
        if state is BaselineState.PERSONALIZING:
            state = BaselineState.POPULATION
        return AdaptiveBaseline(
            update_interval_seconds=float(payload.get("update_interval_seconds", 24 * 3600.0)),
            min_samples=int(payload.get("min_samples", 100)),
            hr_mean=float(payload.get("hr_mean", POPULATION_HR_MEAN)),
            hr_std=float(payload.get("hr_std", POPULATION_HR_STD)),
            hrv_mean=float(payload.get("hrv_mean", POPULATION_HRV_MEAN)),
            hrv_std=float(payload.get("hrv_std", POPULATION_HRV_STD)),
            last_update=float(last_update) if last_update is not None else None,
            state=state,
        )

    @classmethod
    def from_history(
        cls,
        hr_history: Sequence[float],
        hrv_history: Sequence[float],
        update_interval_seconds: float = 24 * 3600.0,
        min_samples: int = 100,
        timestamp: Optional[float] = None,
    ) -> "AdaptiveBaseline":
        if len(hr_history) == 0 or len(hrv_history) == 0:
            return cls(update_interval_seconds=update_interval_seconds, min_samples=min_samples)
        return cls(
            update_interval_seconds=update_interval_seconds,
            min_samples=min_samples,
            hr_mean=float(np.mean(hr_history)),
            hr_std=_sample_std(hr_history),
            hrv_mean=float(np.mean(hrv_history)),
            hrv_std=_sample_std(hrv_history),
            last_update=timestamp,
            state=BaselineState.PERSONALIZED,
        )

    def save_json(self, path: Path | str) -> None:
        out_path = Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_json(cls, path: Path | str) -> "AdaptiveBaseline":
        in_path = Path(path)
        if not in_path.exists():
            raise FileNotFoundError(f"Baseline file not found: {in_path}")
        with open(in_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return cls.from_dict(payload)

    def __repr__(self) -> str:
        return (
            f"AdaptiveBaseline(hr={self.hr_mean:.1f}+/-{self.hr_std:.1f}, "
            f"hrv={self.hrv_mean:.1f}+/-{self.hrv_std:.1f}, samples={self.sample_count}, "
            f"state={self.state.value})"
        )


class SubjectIntervalNormalizer:
    """Rolling z-score of beat intervals against the subject's own history."""

    def __init__(self, history_limit: int = 1000):
        self.history_limit = int(history_limit)
        self._history: List[float] = []

    def __len__(self) -> int:
        return len(self._history)

    def _merged(self, values: Sequence[float]) -> List[float]:
        merged = self._history + [float(v) for v in values]
        if len(merged) > self.history_limit:
            merged = merged[-self.history_limit:]
        return merged

    def transform(self, values: Sequence[float], commit: bool = True) -> List[float]:
        """Z-score ``values``; intervals are returned unchanged when the history has no spread."""
        if len(values) == 0:
            return []
        merged = self._merged(values)
        if commit:
            self._history = merged
        arr = np.asarray(merged, dtype=float)
        mean = float(arr.mean())
        std = float(arr.std()) if np.ptp(arr) > 0 else 0.0
        if std > 0:
            return [(float(v) - mean) / std for v in values]
        return [float(v) for v in values]

    def commit(self, values: Sequence[float]) -> None:
        self._history = self._merged(values)

    def clear(self) -> None:
        self._history.clear()
