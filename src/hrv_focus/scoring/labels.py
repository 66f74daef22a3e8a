import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Mapping, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class FocusLabel(str, Enum):
    FOCUSED = "Focused"
    BORED = "Bored"
    ANXIOUS = "Anxious"
    OVERLOAD = "Overload"
    TIME_PRESSURE = "time pressure"
    DISTRACTED = "Distracted"

    @classmethod
    def parse(cls, name: str) -> "FocusLabel":
        try:
            return cls(name)
        except ValueError:
            pass
        wanted = str(name).strip().lower().replace("_", " ")
        for label in cls:
            if label.value.lower() == wanted:
                return label
        raise ValueError(f"Unknown focus label: {name!r}")


FOUR_CLASS_LABELS: Tuple[FocusLabel, ...] = (
    FocusLabel.BORED,
    FocusLabel.FOCUSED,
    FocusLabel.ANXIOUS,
    FocusLabel.OVERLOAD,
)
THREE_CLASS_LABELS: Tuple[FocusLabel, ...] = (
    FocusLabel.FOCUSED,
    FocusLabel.TIME_PRESSURE,
    FocusLabel.DISTRACTED,
)

# Score band (low, high) per label; score = low + confidence * (high - low)
SCORE_BANDS: Dict[FocusLabel, Tuple[float, float]] = {
    FocusLabel.FOCUSED: (70.0, 100.0),
    FocusLabel.TIME_PRESSURE: (40.0, 70.0),
    FocusLabel.BORED: (30.0, 50.0),
    FocusLabel.ANXIOUS: (20.0, 40.0),
    FocusLabel.OVERLOAD: (0.0, 20.0),
    FocusLabel.DISTRACTED: (0.0, 40.0),
}


def labels_from_names(names: Iterable[str]) -> Tuple[FocusLabel, ...]:
    return tuple(FocusLabel.parse(n) for n in names)


@dataclass(frozen=True)
class ClassProbabilities:
    """Closed label set with a parallel probability array."""

    labels: Tuple[FocusLabel, ...]
    values: np.ndarray

    def __post_init__(self):
        if len(self.labels) != len(self.values):
            raise ValueError("labels and values must have the same length")
        if len(self.labels) == 0:
            raise ValueError("at least one class probability is required")

    @staticmethod
    def from_mapping(
        probabilities: Mapping[str, float],
        label_order: Sequence[FocusLabel] | None = None,
    ) -> "ClassProbabilities":
        parsed = {FocusLabel.parse(k): float(v) for k, v in probabilities.items()}
        if label_order is None:
            order = tuple(parsed.keys())
        else:
            order = tuple(label_order) + tuple(l for l in parsed if l not in label_order)
        values = np.array([parsed.get(label, 0.0) for label in order], dtype=float)
        if not np.all(np.isfinite(values)):
            raise ValueError("class probabilities must be finite")
        if np.any(values < 0.0) or np.any(values > 1.0):
            raise ValueError(f"class probabilities must lie in [0, 1], got {values.tolist()}")
        total = float(values.sum())
        if abs(total - 1.0) > 0.05:
            logger.warning("Class probabilities sum to %.3f, expected ~1", total)
        return ClassProbabilities(labels=order, values=values)

    def argmax(self) -> Tuple[FocusLabel, float]:
        # first label wins on ties
        idx = int(np.argmax(self.values))
        return self.labels[idx], float(self.values[idx])

    def get(self, label: FocusLabel) -> float:
        if label in self.labels:
            return float(self.values[self.labels.index(label)])
        return 0.0

    def as_dict(self) -> Dict[str, float]:
        return {label.value: float(v) for label, v in zip(self.labels, self.values)}
