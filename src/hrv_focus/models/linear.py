"""Linear classifier loaded from a JSON document.

Expected document::

    {
      "model_id": "focus-linear-v1",
      "feature_names": [...],
      "class_names": ["Bored", "Focused", "Anxious", "Overload"],
      "normalization": {"mean": [...], "std": [...]},
      "weights": [[...], ...],     # one row per class (softmax) or one row (sigmoid)
      "bias": [...],
      "positive_class": "Focused"  # sigmoid models only
    }

A single weight row is a binary sigmoid model: the positive class gets ``p``
and the remaining classes share ``1 - p`` evenly.
"""

import json
from pathlib import Path
from typing import Dict, Mapping, Sequence

import numpy as np

from .descriptor import ModelDescriptor, payload_checksum


class JsonLinearClassifier:
    def __init__(
        self,
        descriptor: ModelDescriptor,
        weights: np.ndarray,
        bias: np.ndarray,
        mean: np.ndarray | None = None,
        std: np.ndarray | None = None,
        positive_class: str | None = None,
    ):
        self.descriptor = descriptor
        self.weights = np.atleast_2d(np.asarray(weights, dtype=float))
        self.bias = np.atleast_1d(np.asarray(bias, dtype=float))
        n = descriptor.num_features
        self.mean = np.zeros(n) if mean is None else np.asarray(mean, dtype=float)
        self.std = np.ones(n) if std is None else np.asarray(std, dtype=float)
        self.class_names = [label.value for label in descriptor.labels]
        self.positive_class = positive_class or self.class_names[0]

        if self.weights.shape[1] != n:
            raise ValueError(f"weights have {self.weights.shape[1]} columns, expected {n}")
        if self.weights.shape[0] not in (1, len(self.class_names)):
            raise ValueError("weights must have one row or one row per class")
        if self.bias.size != self.weights.shape[0]:
            raise ValueError("bias must have one entry per weight row")

    def _scale(self, x: np.ndarray) -> np.ndarray:
        safe_std = np.where(self.std == 0, 1.0, self.std)
        z = (x - self.mean) / safe_std
        z[(self.std == 0) | ~np.isfinite(x)] = 0.0
        return z

    def predict(self, features: Sequence[float]) -> Dict[str, float]:
        x = np.asarray(features, dtype=float)
        margins = self.weights @ self._scale(x) + self.bias

        if self.weights.shape[0] == 1:
            p = float(1.0 / (1.0 + np.exp(-margins[0])))
            others = [c for c in self.class_names if c != self.positive_class]
            share = (1.0 - p) / len(others) if others else 0.0
            probs = {c: share for c in others}
            probs[self.positive_class] = p
            return probs

        shifted = np.exp(margins - margins.max())
        probs = shifted / shifted.sum()
        return {c: float(p) for c, p in zip(self.class_names, probs)}

    def close(self) -> None:
        return None

    @classmethod
    def from_dict(cls, payload: Mapping) -> "JsonLinearClassifier":
        class_names = payload.get("class_names")
        descriptor = ModelDescriptor(
            model_id=str(payload.get("model_id", "json-linear")),
            feature_names=tuple(payload["feature_names"]),
            checksum=str(payload.get("checksum") or payload_checksum(payload)),
            class_names=tuple(class_names) if class_names else None,
            model_type="json_linear",
            version=str(payload.get("version", "1.0")),
        )
        norm = payload.get("normalization", {}) or {}
        return cls(
            descriptor=descriptor,
            weights=np.asarray(payload["weights"], dtype=float),
            bias=np.asarray(payload.get("bias", 0.0), dtype=float),
            mean=norm.get("mean"),
            std=norm.get("std"),
            positive_class=payload.get("positive_class"),
        )

    @classmethod
    def load_json(cls, path: Path | str) -> "JsonLinearClassifier":
        in_path = Path(path)
        if not in_path.exists():
            raise FileNotFoundError(f"Model file not found: {in_path}")
        with open(in_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return cls.from_dict(payload)
