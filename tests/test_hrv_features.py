import numpy as np
import pytest

from hrv_focus.errors import InsufficientDataError
from hrv_focus.features.hrv24 import (
    FREQ_BANDS,
    SCHEMA,
    HRVFeatureExtractor24,
    band_power,
    extract_hrv_features,
    single_segment_psd,
    statistical_features,
)


def _make_intervals(n: int = 120, seed: int = 3) -> np.ndarray:
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    return 850.0 + 40.0 * np.sin(2 * np.pi * 0.1 * t) + rng.normal(0.0, 10.0, n)


def test_schema_has_24_names_in_order():
    assert len(SCHEMA) == 24
    assert SCHEMA[:3] == ("mean_rr", "std_rr", "min_rr")
    assert SCHEMA[-4:] == ("skewness", "kurtosis_val", "median_rr", "iqr")
    vector = extract_hrv_features(_make_intervals())
    assert vector.names == SCHEMA
    assert np.all(np.isfinite(vector.as_array()))


def test_constant_intervals():
    vector = extract_hrv_features([60000.0 / 70.0] * 61)
    assert vector["mean_rr"] == pytest.approx(857.142857, rel=1e-6)
    assert vector["std_rr"] == 0.0
    assert vector["rmssd"] == 0.0
    assert vector["skewness"] == 0.0
    assert vector["kurtosis_val"] == 0.0
    assert vector["total_power"] == 0.0
    assert vector["iqr"] == 0.0


def test_single_interval_degrades_to_zeros():
    vector = extract_hrv_features([800.0])
    values = vector.as_dict()
    assert values["mean_rr"] == 800.0
    assert values["std_rr"] == 0.0
    assert values["rmssd"] == 0.0
    for name in ("vlf_power", "lf_power", "hf_power", "total_power", "lf_hf_ratio", "normalized_lf"):
        assert values[name] == 0.0


def test_empty_input_raises():
    with pytest.raises(InsufficientDataError):
        extract_hrv_features([])


def test_timeline_length_mismatch_raises():
    with pytest.raises(ValueError):
        extract_hrv_features([800.0, 810.0], timeline_ms=[800.0])


def test_time_domain_values():
    rr = [800.0, 860.0, 800.0, 860.0]
    vector = extract_hrv_features(rr)
    assert vector["rmssd"] == pytest.approx(60.0)
    assert vector["nn50"] == 3.0
    assert vector["pnn50"] == pytest.approx(100.0)
    assert vector["range_rr"] == 60.0
    assert vector["sdnn"] == vector["std_rr"]


def test_band_powers_partition_total():
    vector = extract_hrv_features(_make_intervals())
    bands = sum(vector[f"{name}_power"] for name, _, _ in FREQ_BANDS)
    assert vector["total_power"] == pytest.approx(bands)
    norms = sum(vector[f"{name}_norm"] for name, _, _ in FREQ_BANDS)
    assert norms == pytest.approx(100.0)
    assert 0.0 <= vector["normalized_lf"] <= 100.0


def test_band_power_half_open():
    freqs = np.array([0.0, 0.1, 0.2, 0.3])
    psd = np.array([1.0, 1.0, 1.0, 1.0])
    # segments end at 0.1, 0.2, 0.3; [0.1, 0.3) takes the ones ending at 0.1 and 0.2
    assert band_power(freqs, psd, 0.1, 0.3) == pytest.approx(0.2)
    assert band_power(freqs, psd, 0.5, 1.0) == 0.0


def test_psd_short_signal():
    freqs, psd = single_segment_psd(np.array([1.0, 2.0, 3.0]))
    assert psd.tolist() == [0.0]


def test_iqr_uses_truncated_indices():
    # n = 5 -> ordered[3] - ordered[1]
    _, _, median, iqr = statistical_features(np.array([5.0, 1.0, 4.0, 2.0, 3.0]))
    assert median == 3.0
    assert iqr == 2.0


def test_skewness_sign():
    skewed = np.array([800.0] * 20 + [1000.0])
    skewness, kurtosis, _, _ = statistical_features(skewed)
    assert skewness > 0
    assert kurtosis > 0


def test_extractor_class_matches_function():
    rr = _make_intervals(60)
    a = HRVFeatureExtractor24().extract(rr)
    b = extract_hrv_features(rr)
    assert np.array_equal(a.as_array(), b.as_array())
