import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..errors import InvalidInputError
from ..scoring.labels import FOUR_CLASS_LABELS, THREE_CLASS_LABELS, FocusLabel, labels_from_names


@dataclass(frozen=True)
class ModelDescriptor:
    """Identity and I/O contract of a classifier (feature order, class names)."""

    model_id: str
    feature_names: Tuple[str, ...]
    checksum: str = ""
    class_names: Optional[Tuple[str, ...]] = None
    model_type: str = "unknown"
    version: str = "1.0"

    @property
    def num_features(self) -> int:
        return len(self.feature_names)

    @property
    def labels(self) -> Tuple[FocusLabel, ...]:
        if self.class_names:
            return labels_from_names(self.class_names)
        if self.num_features == 6:
            return THREE_CLASS_LABELS
        return FOUR_CLASS_LABELS

    def validate_vector(self, values: Sequence[float]) -> None:
        if len(values) != self.num_features:
            raise InvalidInputError(
                f"Model {self.model_id} expects {self.num_features} features, got {len(values)}"
            )

    def metadata(self) -> Dict[str, Any]:
        labels = [label.value for label in self.labels]
        return {
            "id": self.model_id,
            "version": self.version,
            "type": self.model_type,
            "checksum": self.checksum,
            "labels": labels,
            "feature_names": list(self.feature_names),
            "num_classes": len(labels),
            "num_features": self.num_features,
        }

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "feature_names": list(self.feature_names),
            "checksum": self.checksum,
            "class_names": list(self.class_names) if self.class_names else None,
            "model_type": self.model_type,
            "version": self.version,
        }

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "ModelDescriptor":
        class_names = payload.get("class_names")
        return ModelDescriptor(
            model_id=str(payload.get("model_id", "unknown")),
            feature_names=tuple(payload.get("feature_names", ())),
            checksum=str(payload.get("checksum", "")),
            class_names=tuple(class_names) if class_names else None,
            model_type=str(payload.get("model_type", "unknown")),
            version=str(payload.get("version", "1.0")),
        )


def payload_checksum(payload: Mapping[str, Any]) -> str:
    """sha256 of the canonical JSON encoding of a model document."""
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


@runtime_checkable
class Classifier(Protocol):
    """Opaque classifier: ordered feature values in, label -> probability out."""

    descriptor: ModelDescriptor

    def predict(self, features: Sequence[float]) -> Mapping[str, float]:
        ...
