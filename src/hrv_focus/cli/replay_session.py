import argparse
import csv
import logging
from datetime import datetime
from pathlib import Path

from ..config import load_focus_config
from ..engine import FocusEngine
from ..errors import ClassifierError
from ..models.linear import JsonLinearClassifier
from ..profiling.baseline import AdaptiveBaseline
from ..utils.event_store import NDJSONEventStore

logger = logging.getLogger(__name__)


def _parse_timestamp(raw: str):
    try:
        return float(raw)
    except ValueError:
        return datetime.fromisoformat(raw.strip())


def read_samples(path: Path):
    """Yield (timestamp, heart_rate, motion) rows from a CSV with a header line."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            motion = row.get("motion") or 0.0
            yield _parse_timestamp(row["timestamp"]), row["heart_rate"], motion


def replay(engine: FocusEngine, samples_path: Path) -> dict:
    emitted = 0
    failures = 0
    rows = 0
    for ts, hr, motion in read_samples(samples_path):
        rows += 1
        try:
            result = engine.ingest(hr, ts, motion)
        except ClassifierError as e:
            failures += 1
            logger.warning("Inference failed at %s: %s", ts, e)
            continue
        if result is not None:
            emitted += 1
    return {"rows": rows, "results": emitted, "classifier_failures": failures}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Replay a recorded heart-rate session through the focus engine.")
    parser.add_argument("samples", type=Path, help="CSV with timestamp,heart_rate[,motion] columns")
    parser.add_argument("--model", type=Path, required=True, help="JSON linear model document")
    parser.add_argument("--config", type=Path, default=None, help="JSON config (defaults to $HRV_FOCUS_CONFIG)")
    parser.add_argument("--output", type=Path, default=Path("focus_results.ndjson"))
    parser.add_argument("--baseline", type=Path, default=None, help="Baseline JSON to load and update")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = load_focus_config(args.config)
    classifier = JsonLinearClassifier.load_json(args.model)
    baseline = None
    if args.baseline is not None and args.baseline.exists():
        baseline = AdaptiveBaseline.load_json(args.baseline)

    engine = FocusEngine(classifier, config=config, baseline=baseline)
    engine.subscribe(NDJSONEventStore(args.output))
    try:
        summary = replay(engine, args.samples)
    finally:
        engine.dispose()

    if args.baseline is not None:
        engine.baseline.save_json(args.baseline)
    print(f"Replayed {summary['rows']} samples, wrote {summary['results']} focus results to {args.output}")
    return summary


if __name__ == "__main__":
    main()
