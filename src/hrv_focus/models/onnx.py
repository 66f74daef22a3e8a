from pathlib import Path
from typing import Dict, Sequence

import numpy as np

from .descriptor import ModelDescriptor

try:
    import onnxruntime as ort
except ImportError:  # pragma: no cover - optional dependency
    ort = None


class OnnxClassifier:
    """ONNX Runtime classifier (e.g. a converted scikit-learn model).

    The probability output is taken from the last session output, either an
    (1, C) array or the list-of-dicts produced by a ZipMap node. Raises at
    construction when the runtime or the model file is missing.
    """

    def __init__(self, model_path: Path | str, descriptor: ModelDescriptor):
        if ort is None:
            raise RuntimeError("onnxruntime is not installed; install the 'onnx' extra")
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"Model file not found: {self.model_path}")
        self.descriptor = descriptor
        self._session = ort.InferenceSession(str(self.model_path), providers=["CPUExecutionProvider"])
        self._input_name = self._session.get_inputs()[0].name
        self._class_names = [label.value for label in descriptor.labels]

    def predict(self, features: Sequence[float]) -> Dict[str, float]:  # pragma: no cover - needs a model
        batch = np.asarray(features, dtype=np.float32)[np.newaxis, :]
        outputs = self._session.run(None, {self._input_name: batch})
        probs = outputs[-1]
        if isinstance(probs, list) and probs and isinstance(probs[0], dict):
            row = probs[0]
            return {str(self._class_names[k] if isinstance(k, (int, np.integer)) else k): float(v) for k, v in row.items()}
        row = np.asarray(probs, dtype=float).reshape(-1)
        return {c: float(p) for c, p in zip(self._class_names, row)}

    def close(self) -> None:
        self._session = None
