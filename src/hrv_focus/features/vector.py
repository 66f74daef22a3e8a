from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class FeatureVector:
    names: Tuple[str, ...]
    values: np.ndarray

    def __post_init__(self):
        if len(self.names) != len(self.values):
            raise ValueError(
                f"Feature names ({len(self.names)}) and values ({len(self.values)}) differ in length"
            )

    def __len__(self) -> int:
        return len(self.names)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=float)

    def as_dict(self) -> Dict[str, float]:
        return {name: float(v) for name, v in zip(self.names, self.values)}

    def __getitem__(self, name: str) -> float:
        return float(self.values[self.names.index(name)])

    def to_dict(self) -> dict:
        return {"names": list(self.names), "values": [float(v) for v in self.values]}

    @staticmethod
    def from_dict(payload: dict) -> "FeatureVector":
        return FeatureVector(
            names=tuple(payload.get("names", [])),
            values=np.array(payload.get("values", []), dtype=float),
        )

    @staticmethod
    def from_values(names: Sequence[str], values: Sequence[float]) -> "FeatureVector":
        return FeatureVector(names=tuple(names), values=np.asarray(values, dtype=float))
