import numpy as np
import pytest

from hrv_focus.features.legacy import SCHEMA, LegacyFeatureExtractor, extract_legacy_features, higuchi_fd, pnn25


def test_schema_order():
    assert SCHEMA == ("MEDIAN_RR", "HR", "MEAN_RR", "SDRR_RMSSD", "pNN25", "higuci")


def test_pnn25():
    assert pnn25(np.array([800.0, 830.0, 800.0, 810.0])) == pytest.approx(200.0 / 3.0)
    assert pnn25(np.array([800.0])) == 0.0


def test_higuchi_linear_trend_is_one():
    rr = 800.0 + np.arange(100, dtype=float)
    assert higuchi_fd(rr) == pytest.approx(1.0, abs=1e-6)


def test_higuchi_white_noise_near_two():
    rng = np.random.default_rng(11)
    fd = higuchi_fd(rng.normal(0.0, 1.0, 1000))
    assert 1.7 < fd < 2.3


def test_higuchi_short_series():
    assert higuchi_fd([800.0] * 5) == 0.0


def test_extract_valid_vector():
    rr = [800.0, 830.0, 800.0, 810.0, 820.0]
    vector = extract_legacy_features(rr, hr_mean=73.0)
    assert vector is not None
    assert vector.names == SCHEMA
    assert vector["MEDIAN_RR"] == 810.0
    assert vector["HR"] == 73.0
    assert vector["MEAN_RR"] == pytest.approx(812.0)
    assert vector["SDRR_RMSSD"] == pytest.approx(np.std(rr, ddof=1))


def test_extract_rejects_implausible_input():
    assert extract_legacy_features([800.0] * 10, hr_mean=10.0) is None
    assert extract_legacy_features([100.0, 200.0], hr_mean=70.0) is None
    assert LegacyFeatureExtractor().extract([800.0] * 10, hr_mean=310.0) is None
