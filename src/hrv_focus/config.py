import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HRV_FOCUS_CONFIG"


@dataclass
class FocusConfig:
    window_seconds: float = 60.0
    hop_seconds: float = 5.0
    min_valid_samples: int = 30  # post-filter intervals required per inference
    enable_smoothing: bool = True
    smoothing_lambda: float = 0.9  # weight on the newest score
    motion_threshold: float = 2.0  # g
    baseline_update_interval_hours: float = 24.0
    baseline_min_samples: int = 100
    normalize_intervals: bool = True  # subject z-score before feature extraction
    physical_time_axis: bool = False  # resample on the raw intervals instead of the normalized values
    subject_history_limit: int = 1000
    hr_min_bpm: float = 30.0
    hr_max_bpm: float = 220.0

    def __post_init__(self):
        if self.window_seconds <= 0 or self.hop_seconds <= 0:
            raise ValueError("window_seconds and hop_seconds must be positive")
        if not 0.0 < self.smoothing_lambda <= 1.0:
            raise ValueError("smoothing_lambda must be in (0, 1]")
        if self.min_valid_samples < 1:
            raise ValueError("min_valid_samples must be at least 1")
        if self.hr_min_bpm >= self.hr_max_bpm:
            raise ValueError("hr_min_bpm must be below hr_max_bpm")

    @property
    def baseline_update_interval_seconds(self) -> float:
        return self.baseline_update_interval_hours * 3600.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MultimodalConfig:
    high_focus_threshold: float = 0.7
    medium_focus_threshold: float = 0.4
    biosignal_weight: float = 0.6
    behavior_weight: float = 0.4
    smoothing_factor: float = 0.3  # weight on the previous score

    def __post_init__(self):
        if abs(self.biosignal_weight + self.behavior_weight - 1.0) > 1e-6:
            raise ValueError("biosignal_weight and behavior_weight must sum to 1.0")
        if self.medium_focus_threshold > self.high_focus_threshold:
            raise ValueError("medium_focus_threshold must not exceed high_focus_threshold")
        if not 0.0 <= self.smoothing_factor < 1.0:
            raise ValueError("smoothing_factor must be in [0, 1)")

    def to_dict(self) -> dict:
        return asdict(self)


def _read_payload(path: Path | str | None) -> dict:
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return {}
    cfg_path = Path(path)
    if not cfg_path.exists():
        logger.warning("Config file %s not found, using defaults", cfg_path)
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read config %s (%s), using defaults", cfg_path, e)
        return {}
    return payload if isinstance(payload, dict) else {}


def load_focus_config(path: Path | str | None = None) -> FocusConfig:
    payload = _read_payload(path)
    payload = payload.get("focus", payload)
    defaults = FocusConfig()

    return FocusConfig(
        window_seconds=float(payload.get("window_seconds", defaults.window_seconds)),
        hop_seconds=float(payload.get("hop_seconds", defaults.hop_seconds)),
        min_valid_samples=int(payload.get("min_valid_samples", defaults.min_valid_samples)),
        enable_smoothing=bool(payload.get("enable_smoothing", defaults.enable_smoothing)),
        smoothing_lambda=float(payload.get("smoothing_lambda", defaults.smoothing_lambda)),
        motion_threshold=float(payload.get("motion_threshold", defaults.motion_threshold)),
        baseline_update_interval_hours=float(
            payload.get("baseline_update_interval_hours", defaults.baseline_update_interval_hours)
        ),
        baseline_min_samples=int(payload.get("baseline_min_samples", defaults.baseline_min_samples)),
        normalize_intervals=bool(payload.get("normalize_intervals", defaults.normalize_intervals)),
        physical_time_axis=bool(payload.get("physical_time_axis", defaults.physical_time_axis)),
        subject_history_limit=int(payload.get("subject_history_limit", defaults.subject_history_limit)),
        hr_min_bpm=float(payload.get("hr_min_bpm", defaults.hr_min_bpm)),
        hr_max_bpm=float(payload.get("hr_max_bpm", defaults.hr_max_bpm)),
    )


def load_multimodal_config(path: Path | str | None = None) -> MultimodalConfig:
    payload = _read_payload(path).get("multimodal", {}) or {}
    defaults = MultimodalConfig()

    return MultimodalConfig(
        high_focus_threshold=float(payload.get("high_focus_threshold", defaults.high_focus_threshold)),
        medium_focus_threshold=float(payload.get("medium_focus_threshold", defaults.medium_focus_threshold)),
        biosignal_weight=float(payload.get("biosignal_weight", defaults.biosignal_weight)),
        behavior_weight=float(payload.get("behavior_weight", defaults.behavior_weight)),
        smoothing_factor=float(payload.get("smoothing_factor", defaults.smoothing_factor)),
    )
