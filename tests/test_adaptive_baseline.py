import numpy as np
import pytest

from hrv_focus.profiling.baseline import (
    POPULATION_HR_MEAN,
    POPULATION_HRV_STD,
    AdaptiveBaseline,
    BaselineState,
    SubjectIntervalNormalizer,
)


def _make_baseline(min_samples: int = 10, interval: float = 3600.0) -> AdaptiveBaseline:
    return AdaptiveBaseline(update_interval_seconds=interval, min_samples=min_samples)


def test_starts_from_population_defaults():
    baseline = _make_baseline()
    assert baseline.state is BaselineState.POPULATION
    assert baseline.hr_mean == POPULATION_HR_MEAN
    assert baseline.normalize_hr(84.0) == pytest.approx(1.0)
    assert baseline.denormalize_hrv(1.0) == pytest.approx(45.0 + POPULATION_HRV_STD)


def test_first_sample_moves_to_personalizing():
    baseline = _make_baseline()
    assert baseline.add_sample(70.0, 50.0, timestamp=0.0) is False
    assert baseline.state is BaselineState.PERSONALIZING
    assert baseline.last_update == 0.0


def test_recalibrates_after_interval_with_enough_samples():
    baseline = _make_baseline(min_samples=10, interval=3600.0)
    hr = [60.0 + i for i in range(10)]
    hrv = [40.0 + 2 * i for i in range(10)]
    for i in range(9):
        assert baseline.add_sample(hr[i], hrv[i], timestamp=float(i)) is False
    # enough samples but interval not reached
    assert baseline.add_sample(hr[9], hrv[9], timestamp=9.0) is False
    assert baseline.add_sample(70.0, 50.0, timestamp=3600.0) is True

    all_hr = hr + [70.0]
    all_hrv = hrv + [50.0]
    assert baseline.state is BaselineState.PERSONALIZED
    assert baseline.hr_mean == pytest.approx(np.mean(all_hr))
    assert baseline.hr_std == pytest.approx(np.std(all_hr, ddof=1))
    assert baseline.hrv_std == pytest.approx(np.std(all_hrv, ddof=1))
    assert baseline.last_update == 3600.0
    # buffer trimmed to min_samples // 2
    assert baseline.sample_count == 5


def test_not_enough_samples_never_recalibrates():
    baseline = _make_baseline(min_samples=10, interval=1.0)
    for i in range(9):
        assert baseline.add_sample(70.0, 50.0, timestamp=i * 1000.0) is False
    assert baseline.state is BaselineState.PERSONALIZING


def test_force_update_ignores_interval_but_not_count():
    baseline = _make_baseline(min_samples=4, interval=1e9)
    for i in range(3):
        baseline.add_sample(70.0, 50.0, timestamp=float(i))
    assert baseline.force_update() is False
    baseline.add_sample(70.0, 50.0, timestamp=3.0)
    assert baseline.force_update() is True
    assert baseline.hr_mean == 70.0
    # constant history gives zero spread and z-scores collapse to 0
    assert baseline.hr_std == 0.0
    assert baseline.normalize_hr(90.0) == 0.0


def test_reset_to_population():
    baseline = _make_baseline(min_samples=2, interval=0.0)
    baseline.add_sample(60.0, 30.0, timestamp=0.0)
    baseline.add_sample(64.0, 34.0, timestamp=1.0)
    assert baseline.is_personalized
    baseline.reset_to_population(now_ts=5.0)
    assert baseline.state is BaselineState.POPULATION
    assert baseline.hr_mean == POPULATION_HR_MEAN
    assert baseline.sample_count == 0
    assert baseline.last_update == 5.0


def test_confidence_formula():
    baseline = _make_baseline(min_samples=10)
    for i in range(10):
        baseline.add_sample(70.0, 50.0, timestamp=0.0)
    # half of 2 * min_samples, fresh update
    assert baseline.confidence(now_ts=0.0) == pytest.approx(0.7 * 0.5 + 0.3)
    # 24 h later the recency term halves
    assert baseline.confidence(now_ts=24 * 3600.0) == pytest.approx(0.35 + 0.15)
    assert baseline.confidence(now_ts=96 * 3600.0) == pytest.approx(0.35)


def test_json_round_trip(tmp_path):
    baseline = _make_baseline(min_samples=2, interval=0.0)
    baseline.add_sample(60.0, 30.0, timestamp=10.0)
    baseline.add_sample(66.0, 36.0, timestamp=20.0)
    path = tmp_path / "baseline.json"
    baseline.save_json(path)

    loaded = AdaptiveBaseline.load_json(path)
    assert loaded.hr_mean == pytest.approx(baseline.hr_mean)
    assert loaded.hrv_std == pytest.approx(baseline.hrv_std)
    assert loaded.state is BaselineState.PERSONALIZED
    assert loaded.last_update == 20.0
    assert loaded.min_samples == 2


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        AdaptiveBaseline.load_json(tmp_path / "missing.json")


def test_from_history():
    baseline = AdaptiveBaseline.from_history([60.0, 70.0, 80.0], [40.0, 50.0, 60.0], timestamp=1.0)
    assert baseline.is_personalized
    assert baseline.hr_mean == pytest.approx(70.0)
    assert baseline.hr_std == pytest.approx(10.0)


def test_subject_normalizer_constant_history_passes_values_through():
    normalizer = SubjectIntervalNormalizer(history_limit=100)
    values = [857.0] * 20
    assert normalizer.transform(values) == values
    assert len(normalizer) == 20


def test_subject_normalizer_preview_does_not_commit():
    normalizer = SubjectIntervalNormalizer(history_limit=5)
    out = normalizer.transform([800.0, 900.0], commit=False)
    assert len(normalizer) == 0
    assert out == pytest.approx([-1.0, 1.0])
    normalizer.commit([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    assert len(normalizer) == 5


def test_personalizing_state_is_not_restored_without_samples(tmp_path):
    baseline = _make_baseline(min_samples=10)
    baseline.add_sample(70.0, 50.0, timestamp=0.0)
    assert baseline.state is BaselineState.PERSONALIZING
    path = tmp_path / "baseline.json"
    baseline.save_json(path)

    loaded = AdaptiveBaseline.load_json(path)
    assert loaded.sample_count == 0
    assert loaded.state is BaselineState.POPULATION
    assert loaded.hr_mean == POPULATION_HR_MEAN
