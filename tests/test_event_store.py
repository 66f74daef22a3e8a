import json

from hrv_focus.utils.event_store import NDJSONEventStore


def _make_record(ts: float) -> dict:
    return {"timestamp": ts, "dominant_label": "Focused", "focus_score": 97.0}


def test_append_writes_one_line_per_record(tmp_path):
    store = NDJSONEventStore(tmp_path / "nested" / "results.ndjson")
    assert store.append([_make_record(1.0), _make_record(2.0)]) == 2
    assert store.append([]) == 0

    lines = store.path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["timestamp"] for line in lines] == [1.0, 2.0]
    assert store.read_all()[1]["focus_score"] == 97.0


def test_read_all_on_missing_file(tmp_path):
    assert NDJSONEventStore(tmp_path / "results.ndjson").read_all() == []
