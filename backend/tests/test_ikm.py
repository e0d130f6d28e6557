import pytest

import ikm

def test_rounded_index_boundaries():
    assert ikm.satisfaction_index(1.0, "rounded") == 1.0
    assert ikm.satisfaction_index(6.0, "rounded") == 4.0
    assert ikm.satisfaction_index(0.0, "rounded") == 1.0

def test_rounded_index_rounds_half_up():
    # 2.0 * 0.75 + 0.25 = 1.75 -> 2; 3.0 * 0.75 + 0.25 = 2.5 -> 3 (not banker's 2)
    assert ikm.rounded_index(2.0) == 2
    assert ikm.rounded_index(3.0) == 3
    assert ikm.round_half_up(0.5) == 1
    assert ikm.round_half_up(2.5) == 3

def test_linear_index_maps_one_to_six_onto_one_to_four():
    assert ikm.linear_index(1.0) == pytest.approx(1.0)
    assert ikm.linear_index(6.0) == pytest.approx(4.0)
    assert ikm.linear_index(3.5) == pytest.approx(2.5)

def test_index_percent():
    assert ikm.index_percent(1.0) == 0
    assert ikm.index_percent(6.0) == 100
    assert ikm.index_percent(3.5) == 50
    assert ikm.index_percent(0.0) == 0

def test_conversion_value():
    assert ikm.conversion_value(3.0) == 75.0

@pytest.mark.parametrize("index,expected", [
    (1.00, ikm.TIDAK_BAIK),
    (1.75, ikm.TIDAK_BAIK),
    (1.76, ikm.KURANG_BAIK),
    (2.50, ikm.KURANG_BAIK),
    (2.51, ikm.BAIK),
    (3.25, ikm.BAIK),
    (3.26, ikm.SANGAT_BAIK),
    (4.00, ikm.SANGAT_BAIK),
])
def test_quality_bands_on_index(index, expected):
    assert ikm.quality_category(index) == expected

def test_quality_band_has_no_gap_between_bands():
    # values are rounded half-up to two decimals before banding
    assert ikm.quality_category(1.755) == ikm.KURANG_BAIK
    assert ikm.quality_category(1.7551) == ikm.KURANG_BAIK
    assert ikm.quality_category(1.7549) == ikm.TIDAK_BAIK

def test_conversion_band_rounds_half_up():
    assert ikm.quality_category_from_conversion(43.755) == ikm.KURANG_BAIK
    assert ikm.quality_category_from_conversion(43.7549) == ikm.TIDAK_BAIK

@pytest.mark.parametrize("value", [0.0, 0.99, 4.01, float("nan"), None])
def test_quality_outside_table_has_no_data(value):
    assert ikm.quality_category(value) == ikm.NO_DATA
    assert ikm.NO_DATA.description == "Tidak ada data"

@pytest.mark.parametrize("value,expected", [
    (25.0, ikm.TIDAK_BAIK),
    (43.75, ikm.TIDAK_BAIK),
    (43.76, ikm.KURANG_BAIK),
    (62.51, ikm.BAIK),
    (81.26, ikm.SANGAT_BAIK),
    (100.0, ikm.SANGAT_BAIK),
    (101.0, ikm.NO_DATA),
])
def test_quality_bands_on_conversion_value(value, expected):
    assert ikm.quality_category_from_conversion(value) == expected

def test_quality_description():
    assert ikm.BAIK.description == "Baik (B)"

@pytest.mark.parametrize("score,label", [
    (6.0, "Sangat Memuaskan"),
    (5.5, "Sangat Memuaskan"),
    (5.49, "Memuaskan"),
    (3.5, "Cukup Memuaskan"),
    (2.5, "Kurang Memuaskan"),
    (1.5, "Tidak Memuaskan"),
    (1.0, "Sangat Tidak Memuaskan"),
])
def test_score_labels(score, label):
    assert ikm.score_label(score) == label

def test_unknown_variant():
    with pytest.raises(ValueError):
        ikm.satisfaction_index(3.0, "geometric")
