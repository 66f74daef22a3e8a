from pathlib import Path
import json
from typing import Dict, Iterable


class NDJSONEventStore:
    """Append-only NDJSON log of focus results; doubles as an engine subscriber.

    Only derived results (scores, probabilities, features) are written, never
    raw heart-rate samples.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, records: Iterable[Dict]) -> int:
        """Write one JSON line per record; returns the number written."""
        written = 0
        with open(self.path, "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, sort_keys=True) + "\n")
                written += 1
        return written

    def __call__(self, result) -> None:
        self.append([result.to_dict()])

    def read_all(self) -> list:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
